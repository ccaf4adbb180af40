"""Shared fixtures for pgshelf tests."""

import pytest

from pgshelf.retention.policy import RetentionPolicy, RetentionRule
from pgshelf.store.memory import InMemoryStore
from pgshelf.utils.config import reset_config
from tests.fixtures import days


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keep PGSHELF_* variables from the host out of every test."""
    for name in (
        "PGSHELF_CONFIG_PATH",
        "PGSHELF_POLICY_PATH",
        "PGSHELF_STORE_ROOT",
        "PGSHELF_TIMEOUT_MINUTES",
        "PGSHELF_LOG_LEVEL",
        "PGSHELF_DRY_RUN",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def three_tier_policy():
    """Daily for 14 days, every 2 days to 28 days, every 4 days forever."""
    return RetentionPolicy(
        [
            RetentionRule(days(1), days(14)),
            RetentionRule(days(2), days(28)),
            RetentionRule(days(4), None),
        ]
    )


@pytest.fixture
def example_policy():
    """Six-tier policy thinning from daily to every 32 days beyond a year."""
    return RetentionPolicy(
        [
            RetentionRule(days(1), days(14)),
            RetentionRule(days(2), days(28)),
            RetentionRule(days(4), days(74)),
            RetentionRule(days(8), days(194)),
            RetentionRule(days(16), days(374)),
            RetentionRule(days(32), None),
        ]
    )


@pytest.fixture
def store():
    return InMemoryStore()
