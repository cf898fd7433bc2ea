"""
Abstract base class for pipeline stages.

Every stage follows the same contract:
  1. Receive ``AppConfig`` at construction.
  2. ``run(**kwargs)`` is the sole public API.
  3. ``run()`` creates a ``RunMetadata`` record, calls ``_execute()``,
     and persists the run record with its final status.
  4. ``_execute()`` is the stage-specific work (overridden by subclasses).

A stage may set ``run.status = "skipped"`` inside ``_execute()`` when there
was nothing to do; ``run()`` keeps that status instead of ``"success"``.
Exceptions from ``_execute()`` are recorded as ``"failed"`` and re-raised.

Runs called with ``dry_run=True`` are never persisted: a dry run leaves the
database file untouched, and does not create one.

Usage::

    stage = IngestReportStage(config=app_config)
    run = stage.run(source_path="uploads/report.xlsx")
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from uuid import uuid4

from soil_dashboard.config import AppConfig
from soil_dashboard.models.meta import RunMetadata
from soil_dashboard.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class PipelineStage(ABC):
    """Abstract base for pipeline stages.

    Attributes:
        stage_name: Identifier matching a valid ``RunMetadata.pipeline_stage``.
        config: The application configuration for this run.
        db_path: SQLite database path (defaults to ``config.database.db_path``).
    """

    stage_name: str

    def __init__(
        self,
        config: AppConfig,
        db_path: str | None = None,
    ) -> None:
        self.config = config
        self.db_path = db_path or config.database.db_path

    def run(self, **kwargs) -> RunMetadata:
        """Execute this stage and return the finalized run record.

        Args:
            **kwargs: Stage-specific keyword arguments passed to ``_execute()``.

        Returns:
            ``RunMetadata`` with final ``status``, ``rows_processed``
            and ``finished_at`` set.

        Raises:
            Exception: Re-raises any exception from ``_execute()`` after
                recording ``status='failed'``.
        """
        persist = not kwargs.get("dry_run", False)
        run = RunMetadata(
            run_slug=str(uuid4()),
            pipeline_stage=self.stage_name,
            config_snapshot=self.config.model_dump(mode="json"),
            started_at=utcnow(),
        )
        logger.info("Stage [%s] starting | run_slug=%s", self.stage_name, run.run_slug)

        try:
            rows = self._execute(run=run, **kwargs)
        except Exception as exc:
            run.status = "failed"
            run.error_message = str(exc)
            run.finished_at = utcnow()
            logger.error(
                "Stage [%s] FAILED: %s | run_slug=%s",
                self.stage_name, exc, run.run_slug,
            )
            if persist:
                self._persist_run(run)
            raise

        if run.status == "started":
            run.status = "success"
        run.rows_processed = rows
        run.finished_at = utcnow()
        logger.info(
            "Stage [%s] %s | rows=%d | run_slug=%s",
            self.stage_name, run.status, rows, run.run_slug,
        )
        if persist:
            self._persist_run(run)
        return run

    @abstractmethod
    def _execute(self, run: RunMetadata, **kwargs) -> int:
        """Stage-specific implementation.

        Args:
            run: The in-progress ``RunMetadata`` record (mutable).
            **kwargs: Stage-specific parameters.

        Returns:
            Count of records processed.
        """
        ...

    def _persist_run(self, run: RunMetadata) -> None:
        """Write the run record to the database.

        The schema is applied first, so a run that failed before touching
        the store still leaves a usable database behind. Failures are
        logged, not raised, so they never mask the stage's own outcome.
        """
        try:
            from soil_dashboard.db.connection import get_connection
            from soil_dashboard.db.repositories.run_repo import RunMetadataRepository
            from soil_dashboard.db.schema import apply_schema

            with get_connection(
                self.db_path,
                wal_mode=self.config.database.wal_mode,
                busy_timeout_ms=self.config.database.busy_timeout_ms,
            ) as conn:
                apply_schema(conn)
                run.run_id = RunMetadataRepository(conn).insert_run(run)
        except Exception as exc:
            logger.error(
                "Failed to persist RunMetadata for run_slug=%s: %s",
                run.run_slug, exc,
            )
