"""Test fixtures and helpers."""

from tests.fixtures.namespace import days, seed_backup, utc
from tests.fixtures.simulation import RetentionSimulator, SimulatedBackup

__all__ = [
    "days",
    "seed_backup",
    "utc",
    "RetentionSimulator",
    "SimulatedBackup",
]
