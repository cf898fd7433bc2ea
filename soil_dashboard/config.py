"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``SOIL_DASHBOARD_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

CLI commands, pipeline stages and the dashboard all receive an ``AppConfig``
instance, never raw dicts or individual env var lookups scattered through
the codebase.
"""

from __future__ import annotations

import math
import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite document store connection settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/soil_reports.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class IngestionConfig(BaseModel):
    """Where readings live inside the lab's report workbook."""

    model_config = ConfigDict(frozen=True)

    sheet_index: int = 1
    first_row: int = 23
    last_row: int = 42
    skipped_parameters: list[str] = [
        "Sodium Exchangeable Na",
        "Cation Exchange Capacity (by addition)",
    ]

    @field_validator("sheet_index")
    @classmethod
    def validate_sheet_index(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"sheet_index must be >= 0, got {v}.")
        return v

    @field_validator("last_row")
    @classmethod
    def validate_last_row(cls, v: int, info: ValidationInfo) -> int:
        first = info.data.get("first_row")
        if first is not None and v < first:
            raise ValueError(f"last_row ({v}) must be >= first_row ({first}).")
        return v


class RecommendationConfig(BaseModel):
    """Site-wide application-rate overrides, keyed by rule id.

    Rules not listed here use their built-in default rate.
    """

    model_config = ConfigDict(frozen=True)

    rate_overrides: dict[str, float] = {}

    @field_validator("rate_overrides")
    @classmethod
    def validate_rates(cls, v: dict[str, float]) -> dict[str, float]:
        for rule_id, rate in v.items():
            if not math.isfinite(rate) or rate <= 0:
                raise ValueError(
                    f"Rate override for '{rule_id}' must be a positive number, got {rate}."
                )
        return v


class DashboardConfig(BaseModel):
    """Streamlit dashboard settings."""

    model_config = ConfigDict(frozen=True)

    upload_dir: str = "data/uploads"
    title: str = "Soil Analysis Dashboard"


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/soil_dashboard.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration, the single source of truth.

    Constructed by ``load_config()`` which merges TOML + .env.
    """

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    ingestion: IngestionConfig = IngestionConfig()
    recommendations: RecommendationConfig = RecommendationConfig()
    dashboard: DashboardConfig = DashboardConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    dotenv_path = root / ".env"
    load_dotenv(dotenv_path=dotenv_path, override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config explicitly."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    # Also merge local.toml if present (gitignored local overrides)
    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply SOIL_DASHBOARD_* environment variable overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply SOIL_DASHBOARD_* env vars to the raw config dict.

    Supported overrides:
      SOIL_DASHBOARD_DB_PATH    → raw["database"]["db_path"]
      SOIL_DASHBOARD_LOG_LEVEL  → raw["logging"]["level"]
      SOIL_DASHBOARD_DEBUG      → raw["debug"]
    """
    if db_path := os.environ.get("SOIL_DASHBOARD_DB_PATH"):
        raw.setdefault("database", {})["db_path"] = db_path

    if log_level := os.environ.get("SOIL_DASHBOARD_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("SOIL_DASHBOARD_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        ingestion=IngestionConfig(**raw.get("ingestion", {})),
        recommendations=RecommendationConfig(**raw.get("recommendations", {})),
        dashboard=DashboardConfig(**raw.get("dashboard", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
