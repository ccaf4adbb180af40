"""
In-memory hierarchical store.

Backs the test suite and dry-run experiments. Mirrors the behaviour expected
of a remote store: ids are opaque, deleting a non-empty node is refused, and
deleting a missing artifact reports False instead of failing.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import BinaryIO

from pgshelf.errors import StoreOperationError
from pgshelf.store.base import ArtifactInfo, HierarchicalStore, NodeInfo


@dataclass
class _StoredArtifact:
    info: ArtifactInfo
    content: bytes
    content_type: str


@dataclass
class _Node:
    id: str | None
    display_name: str
    parent_id: str | None
    children: list[str] = field(default_factory=list)
    artifacts: dict[str, _StoredArtifact] = field(default_factory=dict)


class InMemoryStore(HierarchicalStore):
    """Hierarchical store held in a dictionary."""

    def __init__(self):
        self._root = _Node(id=None, display_name="", parent_id=None)
        self._nodes: dict[str, _Node] = {}
        self.calls: list[tuple[str, str | None]] = []

    def _get(self, operation: str, node_id: str | None) -> _Node:
        if node_id is None:
            return self._root
        node = self._nodes.get(node_id)
        if node is None:
            raise StoreOperationError(operation, node_id, "node does not exist")
        return node

    def list_children(self, node_id: str | None) -> list[NodeInfo]:
        self.calls.append(("list_children", node_id))
        node = self._get("list_children", node_id)
        return [
            NodeInfo(id=child_id, display_name=self._nodes[child_id].display_name)
            for child_id in node.children
        ]

    def create_child(self, parent_id: str | None, display_name: str) -> str:
        self.calls.append(("create_child", parent_id))
        parent = self._get("create_child", parent_id)
        node_id = uuid.uuid4().hex
        self._nodes[node_id] = _Node(id=node_id, display_name=display_name, parent_id=parent_id)
        parent.children.append(node_id)
        return node_id

    def list_artifacts(self, node_id: str) -> list[ArtifactInfo]:
        self.calls.append(("list_artifacts", node_id))
        node = self._get("list_artifacts", node_id)
        return [stored.info for stored in node.artifacts.values()]

    def delete_artifact(self, node_id: str, artifact_id: str) -> bool:
        self.calls.append(("delete_artifact", node_id))
        node = self._get("delete_artifact", node_id)
        return node.artifacts.pop(artifact_id, None) is not None

    def delete_node(self, node_id: str) -> None:
        self.calls.append(("delete_node", node_id))
        if node_id is None:
            raise StoreOperationError("delete_node", node_id, "the root cannot be deleted")
        node = self._get("delete_node", node_id)
        if node.children or node.artifacts:
            raise StoreOperationError("delete_node", node_id, "node is not empty")
        parent = self._get("delete_node", node.parent_id)
        parent.children.remove(node_id)
        del self._nodes[node_id]

    def write_artifact(
        self,
        node_id: str,
        name: str,
        stream: BinaryIO,
        content_type: str = "application/octet-stream",
        created_at: datetime | None = None,
    ) -> str:
        self.calls.append(("write_artifact", node_id))
        node = self._get("write_artifact", node_id)
        artifact_id = uuid.uuid4().hex
        info = ArtifactInfo(
            id=artifact_id,
            name=name,
            created_at=created_at or datetime.now(timezone.utc),
            node_id=node_id,
        )
        node.artifacts[artifact_id] = _StoredArtifact(
            info=info, content=stream.read(), content_type=content_type
        )
        return artifact_id

    def add_artifact(self, node_id: str, name: str, created_at: datetime) -> str:
        """Attach an empty artifact with a given creation time (test seeding)."""
        node = self._get("add_artifact", node_id)
        artifact_id = uuid.uuid4().hex
        node.artifacts[artifact_id] = _StoredArtifact(
            info=ArtifactInfo(id=artifact_id, name=name, created_at=created_at, node_id=node_id),
            content=b"",
            content_type="application/octet-stream",
        )
        return artifact_id

    def read_artifact(self, node_id: str, artifact_id: str) -> bytes:
        node = self._get("read_artifact", node_id)
        stored = node.artifacts.get(artifact_id)
        if stored is None:
            raise StoreOperationError("read_artifact", node_id, f"no artifact {artifact_id}")
        return stored.content

    def node_count(self) -> int:
        return len(self._nodes)

    def artifact_count(self) -> int:
        return sum(len(node.artifacts) for node in self._nodes.values())

    def exists(self, node_id: str) -> bool:
        return node_id in self._nodes

    def paths(self) -> list[str]:
        """Display-name paths of every node, e.g. ``2024/01 January/10``."""
        result = []

        def walk(node: _Node, prefix: str) -> None:
            for child_id in node.children:
                child = self._nodes[child_id]
                path = f"{prefix}/{child.display_name}" if prefix else child.display_name
                result.append(path)
                walk(child, path)

        walk(self._root, "")
        return result
