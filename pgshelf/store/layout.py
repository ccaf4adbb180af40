"""
Date-based namespace layout: Year > Month > Day.

Backups for a given day live under three nested nodes, for example
``2024 > 03 March > 07``. Nodes are matched by display name, ignoring case,
so resolving the same date twice never creates duplicates.
"""

from __future__ import annotations

from datetime import date, datetime

from loguru import logger

from pgshelf.store.base import HierarchicalStore, NodeInfo

# Fixed English names; display names must not depend on the host locale
MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def date_display_names(moment: date | datetime) -> tuple[str, str, str]:
    """
    Get the year, month and day display names for a date.

    Args:
        moment: Date to place in the namespace

    Returns:
        Tuple like ("2024", "03 March", "07")
    """
    return (
        str(moment.year),
        f"{moment.month:02d} {MONTH_NAMES[moment.month - 1]}",
        f"{moment.day:02d}",
    )


def find_child(
    store: HierarchicalStore, parent_id: str | None, display_name: str
) -> NodeInfo | None:
    """Find a child of ``parent_id`` by display name, ignoring case."""
    wanted = display_name.casefold()
    for child in store.list_children(parent_id):
        if child.display_name.casefold() == wanted:
            return child
    return None


class NamespacePathResolver:
    """Resolves dates to day-level nodes, creating missing levels on demand."""

    def __init__(self, store: HierarchicalStore):
        self._store = store

    def resolve(self, moment: date | datetime) -> str:
        """
        Get or create the Year > Month > Day chain for a date.

        Args:
            moment: Date of the backup run

        Returns:
            Id of the day-level node

        Raises:
            StoreOperationError: If listing or creating a level fails
        """
        names = date_display_names(moment)
        logger.info(
            f"Resolving namespace for {moment:%Y-%m-%d}: {names[0]} > {names[1]} > {names[2]}"
        )

        node_id = None
        for display_name in names:
            node_id = self._get_or_create(node_id, display_name)

        logger.info(f"Namespace resolved. Day node ID: {node_id}")
        return node_id

    def lookup(self, moment: date | datetime) -> str | None:
        """Find the day-level node for a date without creating anything."""
        node_id = None
        for display_name in date_display_names(moment):
            existing = find_child(self._store, node_id, display_name)
            if existing is None:
                return None
            node_id = existing.id
        return node_id

    def _get_or_create(self, parent_id: str | None, display_name: str) -> str:
        existing = find_child(self._store, parent_id, display_name)
        if existing is not None:
            logger.debug(
                f"Found existing node '{display_name}' under {parent_id or '<root>'} "
                f"with ID: {existing.id}"
            )
            return existing.id

        node_id = self._store.create_child(parent_id, display_name)
        logger.info(
            f"Created node '{display_name}' under {parent_id or '<root>'} with ID: {node_id}"
        )
        return node_id
