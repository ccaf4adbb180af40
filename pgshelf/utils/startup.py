"""Startup validation for pgshelf.

Provides fail-fast validation of the configuration and retention policy.
"""

from __future__ import annotations

from loguru import logger

from pgshelf.errors import ConfigurationError, PolicyConfigurationError
from pgshelf.retention.policy import RetentionPolicy
from pgshelf.utils.config import Config, get_config


def validate_startup(config: Config | None = None) -> list[str]:
    """
    Validate the configuration and the retention policy it points to.

    Args:
        config: Configuration to check (defaults to get_config())

    Returns:
        List of error messages. Empty if all valid.
    """
    errors = []

    if config is None:
        try:
            config = get_config()
        except ConfigurationError as e:
            return list(e.problems)

    try:
        config.load_policy()
    except PolicyConfigurationError as e:
        errors.extend(e.violations)

    if config.store_root is not None and config.store_root.exists() and not config.store_root.is_dir():
        errors.append(f"Store root is not a directory: {config.store_root}")

    return errors


def fail_fast_startup(config: Config | None = None) -> tuple[Config, RetentionPolicy]:
    """
    Validate startup and raise if invalid.

    Call this at entry points before touching any store.

    Returns:
        The validated configuration and its loaded retention policy

    Raises:
        RuntimeError: If the configuration or policy is invalid.
    """
    errors = validate_startup(config)
    if errors:
        error_msg = "Startup validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        logger.error(error_msg)
        raise RuntimeError(error_msg)

    config = config or get_config()
    policy = config.load_policy()
    logger.debug("Startup validation passed")
    return config, policy
