"""
Tests for soil_dashboard.config.

What we test
------------
- The committed default.toml loads and validates.
- local.toml and SOIL_DASHBOARD_* env vars override the base file.
- Validators reject bad sheet windows, rates and log levels.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from soil_dashboard.config import (
    AppConfig,
    IngestionConfig,
    LoggingConfig,
    RecommendationConfig,
    load_config,
)

_ENV_VARS = ("SOIL_DASHBOARD_DB_PATH", "SOIL_DASHBOARD_LOG_LEVEL", "SOIL_DASHBOARD_DEBUG")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _write_toml(path, text: str):
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_default_toml_loads(self):
        config = load_config()
        assert isinstance(config, AppConfig)
        assert config.ingestion.sheet_index == 1
        assert config.ingestion.first_row == 23
        assert config.ingestion.last_row == 42
        assert "Sodium Exchangeable Na" in config.ingestion.skipped_parameters
        assert config.recommendations.rate_overrides == {}

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.toml")

    def test_explicit_file(self, tmp_path):
        path = _write_toml(
            tmp_path / "site.toml",
            """
[project]
debug = true

[database]
db_path = "custom/reports.db"

[recommendations.rate_overrides]
lime-application = 180.0
""",
        )
        config = load_config(path)
        assert config.database.db_path == "custom/reports.db"
        assert config.recommendations.rate_overrides == {"lime-application": 180.0}
        assert config.debug is True

    def test_local_toml_merges(self, tmp_path):
        base = _write_toml(
            tmp_path / "default.toml",
            '[database]\ndb_path = "base.db"\nbusy_timeout_ms = 1000\n',
        )
        _write_toml(tmp_path / "local.toml", '[database]\ndb_path = "local.db"\n')
        config = load_config(base)
        assert config.database.db_path == "local.db"
        assert config.database.busy_timeout_ms == 1000

    def test_env_overrides(self, tmp_path, monkeypatch):
        base = _write_toml(tmp_path / "default.toml", '[logging]\nlevel = "INFO"\n')
        monkeypatch.setenv("SOIL_DASHBOARD_DB_PATH", "env.db")
        monkeypatch.setenv("SOIL_DASHBOARD_LOG_LEVEL", "debug")
        monkeypatch.setenv("SOIL_DASHBOARD_DEBUG", "yes")
        config = load_config(base)
        assert config.database.db_path == "env.db"
        assert config.logging.level == "DEBUG"
        assert config.debug is True

    def test_invalid_values_raise(self, tmp_path):
        path = _write_toml(tmp_path / "bad.toml", "[ingestion]\nfirst_row = 30\nlast_row = 20\n")
        with pytest.raises(ValidationError):
            load_config(path)


class TestValidators:
    def test_negative_sheet_index(self):
        with pytest.raises(ValidationError):
            IngestionConfig(sheet_index=-1)

    def test_single_row_window_allowed(self):
        assert IngestionConfig(first_row=23, last_row=23).last_row == 23

    @pytest.mark.parametrize("rate", [0.0, -5.0, float("nan"), float("inf")])
    def test_rate_override_must_be_positive(self, rate):
        with pytest.raises(ValidationError):
            RecommendationConfig(rate_overrides={"lime-application": rate})

    def test_log_level_normalised(self):
        assert LoggingConfig(level="warning").level == "WARNING"

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError):
            LoggingConfig(level="LOUD")

    def test_frozen(self):
        config = AppConfig()
        with pytest.raises(ValidationError):
            config.debug = True  # type: ignore[misc]
