"""
Hierarchical store backed by a local directory tree.

Nodes are directories and artifacts are the regular files inside them. Node
ids are POSIX paths relative to the store root, artifact ids are file names,
and an artifact's creation time is its modification time. Hidden entries
(names starting with ``.``) are ignored so partial writes never show up.

Usage:
    from pgshelf.store.local import LocalDirectoryStore

    store = LocalDirectoryStore("~/pgshelf-data/backups")
    for node in store.list_children(None):
        print(node.display_name)
"""

from __future__ import annotations

import os
import shutil
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import BinaryIO

from loguru import logger

from pgshelf.errors import StoreOperationError
from pgshelf.store.base import ArtifactInfo, HierarchicalStore, NodeInfo


class LocalDirectoryStore(HierarchicalStore):
    """Directory tree exposed through the hierarchical store contract."""

    def __init__(self, root: Path | str, create: bool = True):
        """
        Initialize the store.

        Args:
            root: Directory holding the year-level nodes
            create: Create the root directory if it does not exist
        """
        self.root = Path(root).expanduser()
        if create:
            self.root.mkdir(parents=True, exist_ok=True)
        elif not self.root.is_dir():
            raise StoreOperationError("open", None, f"store root does not exist: {self.root}")

    def _path(self, operation: str, node_id: str | None) -> Path:
        if node_id is None:
            return self.root
        relative = PurePosixPath(node_id)
        if relative.is_absolute() or ".." in relative.parts:
            raise StoreOperationError(operation, node_id, "node id escapes the store root")
        path = self.root.joinpath(*relative.parts)
        if not path.is_dir():
            raise StoreOperationError(operation, node_id, "node does not exist")
        return path

    def _node_id(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    def list_children(self, node_id: str | None) -> list[NodeInfo]:
        path = self._path("list_children", node_id)
        try:
            entries = sorted(path.iterdir())
        except OSError as e:
            raise StoreOperationError("list_children", node_id, str(e)) from e
        return [
            NodeInfo(id=self._node_id(entry), display_name=entry.name)
            for entry in entries
            if entry.is_dir() and not entry.name.startswith(".")
        ]

    def create_child(self, parent_id: str | None, display_name: str) -> str:
        if not display_name or "/" in display_name or display_name in (".", ".."):
            raise StoreOperationError(
                "create_child", parent_id, f"invalid display name: '{display_name}'"
            )
        parent = self._path("create_child", parent_id)
        child = parent / display_name
        try:
            child.mkdir(exist_ok=True)
        except OSError as e:
            raise StoreOperationError("create_child", parent_id, str(e)) from e
        logger.debug(f"Created directory node {child}")
        return self._node_id(child)

    def list_artifacts(self, node_id: str) -> list[ArtifactInfo]:
        path = self._path("list_artifacts", node_id)
        artifacts = []
        try:
            for entry in sorted(path.iterdir()):
                if not entry.is_file() or entry.name.startswith("."):
                    continue
                created_at = datetime.fromtimestamp(entry.stat().st_mtime, timezone.utc)
                artifacts.append(
                    ArtifactInfo(
                        id=entry.name,
                        name=entry.name,
                        created_at=created_at,
                        node_id=node_id,
                    )
                )
        except OSError as e:
            raise StoreOperationError("list_artifacts", node_id, str(e)) from e
        return artifacts

    def delete_artifact(self, node_id: str, artifact_id: str) -> bool:
        path = self._path("delete_artifact", node_id)
        if "/" in artifact_id or artifact_id in (".", ".."):
            raise StoreOperationError("delete_artifact", node_id, f"invalid artifact id: {artifact_id}")
        try:
            (path / artifact_id).unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StoreOperationError("delete_artifact", node_id, str(e)) from e
        return True

    def delete_node(self, node_id: str) -> None:
        if node_id is None:
            raise StoreOperationError("delete_node", node_id, "the root cannot be deleted")
        path = self._path("delete_node", node_id)
        try:
            # rmdir refuses non-empty directories, which is the contract
            path.rmdir()
        except OSError as e:
            raise StoreOperationError("delete_node", node_id, str(e)) from e

    def write_artifact(
        self,
        node_id: str,
        name: str,
        stream: BinaryIO,
        content_type: str = "application/octet-stream",
        created_at: datetime | None = None,
    ) -> str:
        if not name or "/" in name or name.startswith("."):
            raise StoreOperationError("write_artifact", node_id, f"invalid artifact name: '{name}'")
        path = self._path("write_artifact", node_id)
        target = path / name
        partial = path / f".{name}.partial"

        try:
            with open(partial, "wb") as f:
                shutil.copyfileobj(stream, f)
            os.replace(partial, target)
            if created_at is not None:
                timestamp = created_at.timestamp()
                os.utime(target, (timestamp, timestamp))
        except OSError as e:
            partial.unlink(missing_ok=True)
            raise StoreOperationError("write_artifact", node_id, str(e)) from e

        logger.debug(f"Wrote artifact {target} ({content_type})")
        return name
