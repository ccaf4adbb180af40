"""
Load retention policies from JSON documents on disk.

Example document:

    {
        "rules": [
            {"sample_interval": "P1D", "validity_window": "P14D"},
            {"sample_interval": "P2D", "validity_window": "P28D"},
            {"sample_interval": "P4D", "validity_window": null}
        ]
    }
"""

from __future__ import annotations

import json
from pathlib import Path

from loguru import logger

from pgshelf.errors import PolicyConfigurationError
from pgshelf.retention.policy import RetentionPolicy


def load_retention_policy(path: Path | str) -> RetentionPolicy:
    """
    Read and validate a retention policy file.

    Args:
        path: Path to the JSON policy document

    Returns:
        Validated RetentionPolicy

    Raises:
        PolicyConfigurationError: If the file is missing, unreadable, not
            JSON, or describes an invalid policy
    """
    path = Path(path).expanduser()

    if not path.exists():
        raise PolicyConfigurationError([f"Retention policy file not found: {path}"])

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PolicyConfigurationError(
            [f"Failed to read retention policy file {path}: {e}"]
        ) from e

    if not content.strip():
        raise PolicyConfigurationError([f"Retention policy file is empty: {path}"])

    try:
        document = json.loads(content)
    except json.JSONDecodeError as e:
        raise PolicyConfigurationError(
            [f"Failed to parse retention policy file {path}: {e}"]
        ) from e

    policy = RetentionPolicy.from_document(document)
    logger.info(f"Loaded retention policy with {len(policy)} rules from {path}")
    for index, rule in enumerate(policy.rules, start=1):
        logger.debug(f"  Rule {index}: {rule}")
    return policy


def save_retention_policy(policy: RetentionPolicy, path: Path | str) -> Path:
    """
    Write a policy back to disk in canonical ISO-8601 form.

    Args:
        policy: Policy to write
        path: Destination file

    Returns:
        Path written
    """
    path = Path(path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(policy.to_document(), f, indent=2)
    logger.info(f"Saved retention policy with {len(policy)} rules to {path}")
    return path
