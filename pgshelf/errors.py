"""
Exceptions raised by pgshelf.

Policy and configuration errors are fatal at startup. Store errors are
raised by store implementations and recovered per subtree by the sweeper.
"""

from __future__ import annotations


class PgShelfError(Exception):
    """Base class for all pgshelf errors."""


class PolicyConfigurationError(PgShelfError):
    """
    Raised when a retention policy is malformed.

    Carries every violation found, not just the first, so a policy author
    can fix the whole document in one pass.
    """

    def __init__(self, violations: list[str]):
        self.violations = list(violations)
        message = "Retention policy validation failed:\n" + "\n".join(
            f"  - {v}" for v in self.violations
        )
        super().__init__(message)


class ConfigurationError(PgShelfError):
    """Raised when the agent configuration is missing or invalid."""

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        message = "Configuration validation failed:\n" + "\n".join(
            f"  - {p}" for p in self.problems
        )
        super().__init__(message)


class StoreOperationError(PgShelfError):
    """Raised when a list, create, write or delete call on the store fails."""

    def __init__(self, operation: str, node_id: str | None, reason: str):
        self.operation = operation
        self.node_id = node_id
        self.reason = reason
        target = node_id if node_id is not None else "<root>"
        super().__init__(f"{operation} failed for node {target}: {reason}")


class PruneDeleteError(PgShelfError):
    """Deleting an empty namespace node failed. Recovered by the sweeper."""

    def __init__(self, node_id: str, display_name: str, reason: str):
        self.node_id = node_id
        self.display_name = display_name
        self.reason = reason
        super().__init__(
            f"Could not prune empty node '{display_name}' ({node_id}): {reason}"
        )
