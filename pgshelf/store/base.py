"""
Contract for hierarchical object stores.

A store holds a tree of namespace nodes (Year > Month > Day for backups).
Each node has an opaque id assigned by the store and a human display name,
and may hold artifacts and child nodes. ``None`` addresses the store root,
which is never listed as a node and never deleted.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO


@dataclass(frozen=True)
class NodeInfo:
    """A namespace node as reported by the store."""

    id: str
    display_name: str


@dataclass(frozen=True)
class ArtifactInfo:
    """
    A stored artifact.

    Attributes:
        id: Opaque artifact id, unique within its node
        name: Original file name
        created_at: Creation time used for retention decisions
        node_id: Id of the node holding the artifact
    """

    id: str
    name: str
    created_at: datetime
    node_id: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "created_at": self.created_at.isoformat(),
            "node_id": self.node_id,
        }


class HierarchicalStore(ABC):
    """
    Tree of namespace nodes holding artifacts.

    Implementations raise StoreOperationError for any failed call. Deleting
    an artifact that is already gone is not a failure.
    """

    @abstractmethod
    def list_children(self, node_id: str | None) -> list[NodeInfo]:
        """List the direct children of a node (``None`` for the root)."""

    @abstractmethod
    def create_child(self, parent_id: str | None, display_name: str) -> str:
        """Create a child node and return its id."""

    @abstractmethod
    def list_artifacts(self, node_id: str) -> list[ArtifactInfo]:
        """List the artifacts held directly by a node."""

    @abstractmethod
    def delete_artifact(self, node_id: str, artifact_id: str) -> bool:
        """
        Delete an artifact.

        Returns:
            True if it was deleted, False if it did not exist
        """

    @abstractmethod
    def delete_node(self, node_id: str) -> None:
        """Delete an empty node."""

    @abstractmethod
    def write_artifact(
        self,
        node_id: str,
        name: str,
        stream: BinaryIO,
        content_type: str = "application/octet-stream",
        created_at: datetime | None = None,
    ) -> str:
        """
        Store the bytes read from ``stream`` as a new artifact under a node.

        Returns:
            Id of the new artifact
        """
