"""
Retention sweep over a hierarchical store.

Walks the namespace tree depth-first, deletes artifacts the policy rejects,
then prunes nodes left with neither artifacts nor children. Children are
always finished before their parent is checked, so a month whose days all
disappear is removed in the same pass.

Failures are contained: a subtree whose listing fails is skipped and
recorded, a failed artifact delete is recorded, and a failed node delete is
only logged. Includes dry-run mode for previewing a policy change.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from loguru import logger

from pgshelf.errors import PruneDeleteError, StoreOperationError
from pgshelf.retention.policy import RetentionPolicy, as_utc
from pgshelf.store.base import ArtifactInfo, HierarchicalStore, NodeInfo


@dataclass
class SweepReport:
    """
    Result of a retention sweep.

    Attributes:
        now: Reference time the policy was evaluated against
        dry_run: Whether this was a dry run
        nodes_visited: Number of namespace nodes visited
        artifacts_kept: Number of artifacts the policy kept
        evicted: Artifacts deleted (or that would be, in a dry run)
        pruned: Empty nodes deleted (or that would be, in a dry run)
        errors: Store failures that skipped a subtree or an artifact
        prune_failures: Empty nodes that could not be deleted
        cancelled: Whether the sweep stopped early on request
        duration_seconds: Time taken for the sweep
    """

    now: datetime
    dry_run: bool = False
    nodes_visited: int = 0
    artifacts_kept: int = 0
    evicted: list[ArtifactInfo] = field(default_factory=list)
    pruned: list[NodeInfo] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    prune_failures: list[str] = field(default_factory=list)
    cancelled: bool = False
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        """Check if every subtree was swept. Prune failures do not count."""
        return len(self.errors) == 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "now": self.now.isoformat(),
            "dry_run": self.dry_run,
            "nodes_visited": self.nodes_visited,
            "artifacts_kept": self.artifacts_kept,
            "artifacts_evicted": len(self.evicted),
            "nodes_pruned": len(self.pruned),
            "evicted": [artifact.to_dict() for artifact in self.evicted],
            "pruned": [{"id": n.id, "display_name": n.display_name} for n in self.pruned],
            "errors": self.errors,
            "prune_failures": self.prune_failures,
            "cancelled": self.cancelled,
            "duration_seconds": self.duration_seconds,
        }


class RetentionSweeper:
    """
    Applies a retention policy to every node of a store.

    The sweep is sequential. It checks ``cancel_event`` before each node
    visit and stops cleanly once it is set; whatever was already deleted
    stays deleted, and re-running the sweep later finishes the job.
    """

    def __init__(
        self,
        store: HierarchicalStore,
        policy: RetentionPolicy,
        dry_run: bool = False,
        cancel_event: threading.Event | None = None,
    ):
        """
        Initialize the sweeper.

        Args:
            store: Store holding the namespace tree
            policy: Retention policy deciding which artifacts to keep
            dry_run: If True, only report what would be deleted
            cancel_event: Optional event that stops the sweep when set
        """
        self._store = store
        self._policy = policy
        self._dry_run = dry_run
        self._cancel_event = cancel_event

    def sweep(
        self,
        now: datetime | None = None,
        root_nodes: Iterable[NodeInfo] | None = None,
    ) -> SweepReport:
        """
        Sweep the namespace tree.

        Args:
            now: Reference time for the policy (defaults to current UTC time)
            root_nodes: Nodes to start from (defaults to the store root's children)

        Returns:
            SweepReport describing what was evicted and pruned

        Raises:
            StoreOperationError: If the root's children cannot be listed
        """
        now = as_utc(now) if now is not None else datetime.now(timezone.utc)
        report = SweepReport(now=now, dry_run=self._dry_run)
        start_time = time.perf_counter()

        logger.info(f"Running retention sweep (dry_run={self._dry_run}) as of {now.isoformat()}")

        if root_nodes is None:
            root_nodes = self._store.list_children(None)

        for node in root_nodes:
            if self._check_cancelled(report):
                break
            self._sweep_node(node, now, report)

        report.duration_seconds = time.perf_counter() - start_time

        logger.info(
            f"Retention sweep finished: visited={report.nodes_visited}, "
            f"kept={report.artifacts_kept}, evicted={len(report.evicted)}, "
            f"pruned={len(report.pruned)}, errors={len(report.errors)}, "
            f"prune_failures={len(report.prune_failures)}, cancelled={report.cancelled}"
        )
        return report

    def _sweep_node(self, node: NodeInfo, now: datetime, report: SweepReport) -> bool:
        """
        Sweep one node and its subtree.

        Returns:
            True if the node was pruned (or would be, in a dry run)
        """
        if self._check_cancelled(report):
            return False
        report.nodes_visited += 1

        try:
            artifacts = self._store.list_artifacts(node.id)
        except StoreOperationError as e:
            self._record_error(report, node, e)
            return False

        evicted_count = 0
        remaining_count = 0
        for artifact in artifacts:
            if self._policy.should_keep(artifact.created_at, now):
                report.artifacts_kept += 1
                remaining_count += 1
            elif self._evict(node, artifact, report):
                evicted_count += 1
            else:
                remaining_count += 1

        try:
            children = self._store.list_children(node.id)
        except StoreOperationError as e:
            self._record_error(report, node, e)
            return False

        remaining_children = 0
        for child in children:
            if not self._sweep_node(child, now, report):
                remaining_children += 1

        if report.cancelled:
            return False

        # Untouched nodes that still hold artifacts cannot have become empty
        if artifacts and evicted_count == 0:
            return False

        return self._prune_if_empty(node, report, remaining_count, remaining_children)

    def _evict(self, node: NodeInfo, artifact: ArtifactInfo, report: SweepReport) -> bool:
        """Delete one rejected artifact. Returns True if it is gone."""
        if self._dry_run:
            logger.info(f"Would delete old backup: {artifact.name} from node {node.display_name}")
            report.evicted.append(artifact)
            return True

        try:
            found = self._store.delete_artifact(node.id, artifact.id)
        except StoreOperationError as e:
            self._record_error(report, node, e)
            return False

        if found:
            logger.info(f"Deleted old backup: {artifact.name} from node {node.display_name}")
        else:
            logger.debug(f"Old backup {artifact.name} was already gone from node {node.display_name}")
        report.evicted.append(artifact)
        return True

    def _prune_if_empty(
        self,
        node: NodeInfo,
        report: SweepReport,
        remaining_artifacts: int,
        remaining_children: int,
    ) -> bool:
        """Delete ``node`` if it holds nothing. Returns True if it was pruned."""
        if self._dry_run:
            if remaining_artifacts or remaining_children:
                return False
            logger.info(f"Would delete empty node: {node.display_name} (ID: {node.id})")
            report.pruned.append(node)
            return True

        try:
            if self._store.list_artifacts(node.id):
                return False
            if self._store.list_children(node.id):
                return False
        except StoreOperationError as e:
            self._record_error(report, node, e)
            return False

        try:
            self._store.delete_node(node.id)
        except StoreOperationError as e:
            failure = PruneDeleteError(node.id, node.display_name, e.reason)
            logger.warning(f"Tried to delete empty node but failed: {failure}")
            report.prune_failures.append(str(failure))
            return False

        logger.info(f"Deleted empty node: {node.display_name} (ID: {node.id})")
        report.pruned.append(node)
        return True

    def _check_cancelled(self, report: SweepReport) -> bool:
        if report.cancelled:
            return True
        if self._cancel_event is not None and self._cancel_event.is_set():
            logger.warning(
                f"Retention sweep cancelled after visiting {report.nodes_visited} nodes"
            )
            report.cancelled = True
            return True
        return False

    @staticmethod
    def _record_error(report: SweepReport, node: NodeInfo, error: StoreOperationError) -> None:
        message = f"{node.display_name} ({node.id}): {error}"
        logger.error(f"Retention sweep error at {message}")
        report.errors.append(message)
