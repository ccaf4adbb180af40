"""Helpers for building namespace trees in a store."""

from datetime import datetime, timedelta, timezone

from pgshelf.store.layout import NamespacePathResolver


def utc(year, month, day, hour=0, minute=0, second=0):
    """Shorthand for an aware UTC datetime."""
    return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)


def days(n):
    return timedelta(days=n)


def seed_backup(store, created_at, name=None):
    """
    Place a backup in its day node, creating the Year > Month > Day chain.

    Returns:
        Tuple of (day node id, artifact id)
    """
    node_id = NamespacePathResolver(store).resolve(created_at)
    name = name or f"orders_{created_at:%Y%m%d_%H%M%S}.sql"
    artifact_id = store.add_artifact(node_id, name, created_at)
    return node_id, artifact_id
