"""
Backup retention for pgshelf.

Provides the rule-based keep/evict decision and the sweep that applies it to
a hierarchical store.

Usage:
    from pgshelf.retention import RetentionSweeper, load_retention_policy

    policy = load_retention_policy("retention-policy.json")
    report = RetentionSweeper(store, policy).sweep()
"""

from pgshelf.retention.loader import load_retention_policy, save_retention_policy
from pgshelf.retention.policy import (
    REFERENCE_EPOCH,
    RetentionDecision,
    RetentionPolicy,
    RetentionRule,
    default_policy,
)
from pgshelf.retention.sweeper import RetentionSweeper, SweepReport

__all__ = [
    "REFERENCE_EPOCH",
    "RetentionDecision",
    "RetentionPolicy",
    "RetentionRule",
    "default_policy",
    "load_retention_policy",
    "save_retention_policy",
    "RetentionSweeper",
    "SweepReport",
]
