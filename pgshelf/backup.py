"""
One-shot backup run: dump every source into today's day node, then sweep.

The dump itself is produced by a DumpProducer supplied by the caller (for
example a wrapper around pg_dump); this module only decides where dumps go
and applies the retention policy afterwards.

Usage:
    from pgshelf.backup import BackupOrchestrator

    orchestrator = BackupOrchestrator(producer, store, policy)
    result = orchestrator.run()
    if not result.success:
        sys.exit(1)
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, BinaryIO, Callable

from loguru import logger

from pgshelf.errors import PgShelfError
from pgshelf.retention.policy import RetentionPolicy, as_utc
from pgshelf.retention.sweeper import RetentionSweeper, SweepReport
from pgshelf.store.base import HierarchicalStore
from pgshelf.store.layout import NamespacePathResolver

DEFAULT_CONTENT_TYPE = "application/sql"


@dataclass
class BackupFile:
    """
    A dump ready to be uploaded.

    Attributes:
        source_name: Name of the database or other source that was dumped
        filename: File name to store the dump under
        created_at: Time the dump was taken
        open_stream: Callable returning a fresh binary stream of the dump
        estimated_size_bytes: Size hint for logging (0 if unknown)
    """

    source_name: str
    filename: str
    created_at: datetime
    open_stream: Callable[[], BinaryIO]
    estimated_size_bytes: int = 0

    def __post_init__(self) -> None:
        if not self.source_name:
            raise ValueError("source_name cannot be empty")
        if not self.filename:
            raise ValueError("filename cannot be empty")


class DumpProducer(ABC):
    """Produces one dump per named source."""

    @abstractmethod
    def list_sources(self) -> list[str]:
        """Names of the sources to back up."""

    @abstractmethod
    def create_dump(self, source_name: str, now: datetime) -> BackupFile:
        """Dump one source."""


def default_filename(source_name: str, now: datetime) -> str:
    """File name for a dump, e.g. ``orders_20240307_021500.sql``."""
    return f"{source_name}_{now.strftime('%Y%m%d_%H%M%S')}.sql"


@dataclass
class BackupRunResult:
    """
    Result of one backup run.

    ``success`` only reflects the backup phase; failures while pruning old
    backups are reported in ``sweep`` or ``sweep_error`` but never fail the run.
    """

    started_at: datetime
    target_node_id: str | None = None
    uploaded: list[dict[str, Any]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    sweep: SweepReport | None = None
    sweep_error: str | None = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.target_node_id is not None and len(self.errors) == 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "started_at": self.started_at.isoformat(),
            "target_node_id": self.target_node_id,
            "uploaded": self.uploaded,
            "errors": self.errors,
            "sweep": self.sweep.to_dict() if self.sweep else None,
            "sweep_error": self.sweep_error,
            "duration_seconds": self.duration_seconds,
            "success": self.success,
        }


class BackupOrchestrator:
    """
    Coordinates a backup run against a hierarchical store.

    Resolves the day node for the run, uploads one dump per source, then
    applies the retention policy to the whole store.
    """

    def __init__(
        self,
        producer: DumpProducer,
        store: HierarchicalStore,
        policy: RetentionPolicy,
        content_type: str = DEFAULT_CONTENT_TYPE,
        dry_run: bool = False,
        apply_retention: bool = True,
    ):
        """
        Initialize the orchestrator.

        Args:
            producer: Source of dumps
            store: Destination store
            policy: Retention policy applied after uploading
            content_type: Content type recorded for each dump
            dry_run: If True, the retention sweep only reports
            apply_retention: If False, skip the sweep entirely
        """
        self._producer = producer
        self._store = store
        self._policy = policy
        self._content_type = content_type
        self._dry_run = dry_run
        self._apply_retention = apply_retention
        self._resolver = NamespacePathResolver(store)

    def run(
        self,
        now: datetime | None = None,
        cancel_event: threading.Event | None = None,
    ) -> BackupRunResult:
        """
        Execute one backup run.

        Args:
            now: Time of the run (defaults to current UTC time)
            cancel_event: Optional event that stops the run between steps

        Returns:
            BackupRunResult with uploads, errors and the sweep report
        """
        now = as_utc(now) if now is not None else datetime.now(timezone.utc)
        result = BackupRunResult(started_at=now)
        start_time = time.perf_counter()

        logger.info(f"Starting backup run at {now.isoformat()}")

        try:
            result.target_node_id = self._resolver.resolve(now)
            sources = self._producer.list_sources()
        except PgShelfError as e:
            logger.error(f"Backup run aborted: {e}")
            result.errors.append(str(e))
            result.duration_seconds = time.perf_counter() - start_time
            return result

        logger.info(f"Found {len(sources)} sources to back up")

        for source_name in sources:
            if cancel_event is not None and cancel_event.is_set():
                logger.warning("Backup run cancelled before all sources were dumped")
                result.errors.append("cancelled before all sources were dumped")
                break
            self._backup_source(source_name, now, result)

        if self._apply_retention and not (cancel_event is not None and cancel_event.is_set()):
            try:
                sweeper = RetentionSweeper(
                    self._store,
                    self._policy,
                    dry_run=self._dry_run,
                    cancel_event=cancel_event,
                )
                result.sweep = sweeper.sweep(now=now)
            except PgShelfError as e:
                logger.error(f"Retention sweep failed: {e}")
                result.sweep_error = str(e)

        result.duration_seconds = time.perf_counter() - start_time
        logger.info(
            f"Completed backup run: uploaded={len(result.uploaded)}, errors={len(result.errors)}"
        )
        return result

    def _backup_source(self, source_name: str, now: datetime, result: BackupRunResult) -> None:
        """Dump and upload one source, recording any failure."""
        try:
            backup_file = self._producer.create_dump(source_name, now)
            stream = backup_file.open_stream()
            try:
                artifact_id = self._store.write_artifact(
                    result.target_node_id,
                    backup_file.filename,
                    stream,
                    content_type=self._content_type,
                    created_at=as_utc(backup_file.created_at),
                )
            finally:
                stream.close()
        except Exception as e:
            logger.error(f"Failed to back up source {source_name}: {e}")
            result.errors.append(f"{source_name}: {e}")
            return

        logger.info(f"Uploaded backup {backup_file.filename} with ID: {artifact_id}")
        result.uploaded.append(
            {
                "source": source_name,
                "filename": backup_file.filename,
                "artifact_id": artifact_id,
                "size_bytes": backup_file.estimated_size_bytes,
            }
        )
