"""
Hierarchical object stores and the date-based namespace layout.

Usage:
    from pgshelf.store import InMemoryStore, NamespacePathResolver

    store = InMemoryStore()
    day_node_id = NamespacePathResolver(store).resolve(date(2024, 3, 7))
"""

from pgshelf.store.base import ArtifactInfo, HierarchicalStore, NodeInfo
from pgshelf.store.layout import NamespacePathResolver, date_display_names, find_child
from pgshelf.store.local import LocalDirectoryStore
from pgshelf.store.memory import InMemoryStore

__all__ = [
    "ArtifactInfo",
    "HierarchicalStore",
    "NodeInfo",
    "NamespacePathResolver",
    "date_display_names",
    "find_child",
    "LocalDirectoryStore",
    "InMemoryStore",
]
