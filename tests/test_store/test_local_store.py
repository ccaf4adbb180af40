"""
Tests for the local directory store.

Tests cover:
- Directories as nodes and files as artifacts
- Atomic writes and modification times as creation times
- Refusal to escape the store root
- A full sweep over a real directory tree
"""

import io
import os

import pytest

from pgshelf.errors import StoreOperationError
from pgshelf.retention.sweeper import RetentionSweeper
from pgshelf.store.layout import NamespacePathResolver
from pgshelf.store.local import LocalDirectoryStore
from tests.fixtures import utc


@pytest.fixture
def local_store(tmp_path):
    return LocalDirectoryStore(tmp_path / "backups")


def write(store, node_id, name, created_at, content=b"-- dump"):
    return store.write_artifact(node_id, name, io.BytesIO(content), created_at=created_at)


class TestLocalStoreInit:
    """Tests for opening a store."""

    def test_creates_root(self, tmp_path):
        store = LocalDirectoryStore(tmp_path / "a" / "b")

        assert store.root.is_dir()

    def test_missing_root_without_create(self, tmp_path):
        with pytest.raises(StoreOperationError, match="does not exist"):
            LocalDirectoryStore(tmp_path / "missing", create=False)


class TestLocalNodes:
    """Directory nodes."""

    def test_create_and_list(self, local_store):
        year = local_store.create_child(None, "2024")
        month = local_store.create_child(year, "03 March")

        assert year == "2024"
        assert month == "2024/03 March"
        assert [n.display_name for n in local_store.list_children(year)] == ["03 March"]
        assert (local_store.root / "2024" / "03 March").is_dir()

    def test_create_existing_returns_same_id(self, local_store):
        first = local_store.create_child(None, "2024")
        second = local_store.create_child(None, "2024")

        assert first == second

    def test_hidden_directories_are_ignored(self, local_store):
        (local_store.root / ".trash").mkdir()
        local_store.create_child(None, "2024")

        assert [n.id for n in local_store.list_children(None)] == ["2024"]

    def test_invalid_display_name(self, local_store):
        with pytest.raises(StoreOperationError, match="invalid display name"):
            local_store.create_child(None, "a/b")

    def test_node_id_cannot_escape_root(self, local_store):
        with pytest.raises(StoreOperationError, match="escapes"):
            local_store.list_children("../elsewhere")

    def test_delete_node_requires_empty(self, local_store):
        year = local_store.create_child(None, "2024")
        write(local_store, year, "stray.sql", utc(2024, 1, 1))

        with pytest.raises(StoreOperationError):
            local_store.delete_node(year)

        local_store.delete_artifact(year, "stray.sql")
        local_store.delete_node(year)

        assert local_store.list_children(None) == []

    def test_root_cannot_be_deleted(self, local_store):
        with pytest.raises(StoreOperationError, match="root"):
            local_store.delete_node(None)


class TestLocalArtifacts:
    """File artifacts."""

    def test_write_sets_modification_time(self, local_store):
        node = local_store.create_child(None, "2024")

        artifact_id = write(local_store, node, "orders.sql", utc(2024, 3, 7, 2, 15))

        [info] = local_store.list_artifacts(node)
        assert artifact_id == "orders.sql"
        assert info.created_at == utc(2024, 3, 7, 2, 15)
        assert (local_store.root / "2024" / "orders.sql").read_bytes() == b"-- dump"

    def test_write_leaves_no_partial_file(self, local_store):
        node = local_store.create_child(None, "2024")

        write(local_store, node, "orders.sql", utc(2024, 3, 7))

        assert sorted(os.listdir(local_store.root / "2024")) == ["orders.sql"]

    def test_partial_files_are_not_artifacts(self, local_store):
        node = local_store.create_child(None, "2024")
        (local_store.root / "2024" / ".orders.sql.partial").write_bytes(b"half")

        assert local_store.list_artifacts(node) == []

    def test_invalid_artifact_name(self, local_store):
        node = local_store.create_child(None, "2024")

        with pytest.raises(StoreOperationError, match="invalid artifact name"):
            write(local_store, node, ".hidden.sql", utc(2024, 3, 7))

    def test_delete_missing_artifact_returns_false(self, local_store):
        node = local_store.create_child(None, "2024")

        assert local_store.delete_artifact(node, "gone.sql") is False

    def test_subdirectories_are_not_artifacts(self, local_store):
        year = local_store.create_child(None, "2024")
        local_store.create_child(year, "01 January")

        assert local_store.list_artifacts(year) == []


class TestLocalSweep:
    """End to end sweep over a directory tree."""

    def test_sweep_removes_stale_days(self, local_store, three_tier_policy):
        resolver = NamespacePathResolver(local_store)
        stale = resolver.resolve(utc(2024, 1, 10))
        kept = resolver.resolve(utc(2024, 1, 17))
        write(local_store, stale, "orders_a.sql", utc(2024, 1, 10, 2))
        write(local_store, kept, "orders_b.sql", utc(2024, 1, 17, 2))

        report = RetentionSweeper(local_store, three_tier_policy).sweep(now=utc(2024, 3, 1))

        assert report.success
        assert [a.name for a in report.evicted] == ["orders_a.sql"]
        assert not (local_store.root / "2024" / "01 January" / "10").exists()
        assert (local_store.root / "2024" / "01 January" / "17" / "orders_b.sql").exists()
