"""
Agent configuration for pgshelf.

Settings come from an optional JSON file named by ``PGSHELF_CONFIG_PATH``,
overridden by individual environment variables:

    PGSHELF_CONFIG_PATH      JSON config file
    PGSHELF_POLICY_PATH      Retention policy document
    PGSHELF_STORE_ROOT       Directory for the local directory store
    PGSHELF_TIMEOUT_MINUTES  Time budget for one run (default: 60)
    PGSHELF_LOG_LEVEL        Log level (default: INFO)
    PGSHELF_DRY_RUN          Report without deleting (default: false)

Config file layout (keys are case-insensitive, underscores optional):

    {
        "backup": {"retention_policy_path": "retention.json", "timeout_minutes": 30},
        "store": {"root": "/var/backups/pgshelf"},
        "log_level": "INFO"
    }

Relative paths in the file are resolved against the file's directory.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

from pgshelf.errors import ConfigurationError
from pgshelf.retention.loader import load_retention_policy
from pgshelf.retention.policy import RetentionPolicy, default_policy

ENV_PREFIX = "PGSHELF_"
VALID_LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off", "")


@dataclass
class Config:
    """
    Resolved agent configuration.

    Attributes:
        policy_path: Retention policy document (None = built-in default policy)
        store_root: Root directory for the local directory store
        timeout_minutes: Time budget for one run; the sweep is cancelled after it
        log_level: Loguru level name
        dry_run: Report what would be deleted without deleting
        config_path: File the settings were read from, if any
    """

    policy_path: Path | None = None
    store_root: Path | None = None
    timeout_minutes: int = 60
    log_level: str = "INFO"
    dry_run: bool = False
    config_path: Path | None = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        problems = self.problems()
        if problems:
            raise ConfigurationError(problems)

    def problems(self) -> list[str]:
        found = []
        if not isinstance(self.timeout_minutes, int) or self.timeout_minutes <= 0:
            found.append(f"timeout_minutes must be a positive integer, got {self.timeout_minutes!r}")
        if str(self.log_level).upper() not in VALID_LOG_LEVELS:
            found.append(
                f"log_level must be one of {', '.join(VALID_LOG_LEVELS)}, got {self.log_level!r}"
            )
        return found

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_minutes * 60.0

    def load_policy(self) -> RetentionPolicy:
        """
        Load the configured retention policy.

        Raises:
            PolicyConfigurationError: If the policy document is invalid
        """
        if self.policy_path is None:
            logger.warning("No retention policy configured, using the built-in default policy")
            return default_policy()
        return load_retention_policy(self.policy_path)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "policy_path": str(self.policy_path) if self.policy_path else None,
            "store_root": str(self.store_root) if self.store_root else None,
            "timeout_minutes": self.timeout_minutes,
            "log_level": self.log_level,
            "dry_run": self.dry_run,
            "config_path": str(self.config_path) if self.config_path else None,
        }


def _normalize_keys(section: Any) -> dict[str, Any]:
    if not isinstance(section, dict):
        return {}
    return {str(k).lower().replace("_", ""): v for k, v in section.items()}


def _parse_bool(name: str, value: Any, problems: list[str]) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text not in _FALSE_VALUES:
        problems.append(f"{name} must be a boolean, got {value!r}")
    return False


def _parse_int(name: str, value: Any, problems: list[str]) -> int | None:
    if isinstance(value, bool):
        problems.append(f"{name} must be an integer, got {value!r}")
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        problems.append(f"{name} must be an integer, got {value!r}")
        return None


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigurationError([f"Configuration file not found: {path}"])
    try:
        with open(path, encoding="utf-8") as f:
            document = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError([f"Failed to parse configuration file {path}: {e}"]) from e
    except OSError as e:
        raise ConfigurationError([f"Failed to read configuration file {path}: {e}"]) from e
    if not isinstance(document, dict):
        raise ConfigurationError([f"Configuration file {path} must contain a JSON object"])
    return document


def load_config(config_path: Path | str | None = None) -> Config:
    """
    Build the configuration from the config file and environment.

    Args:
        config_path: Config file (defaults to ``PGSHELF_CONFIG_PATH``, optional)

    Returns:
        Validated Config

    Raises:
        ConfigurationError: Listing every invalid setting
    """
    if config_path is None:
        config_path = os.getenv(f"{ENV_PREFIX}CONFIG_PATH") or None

    settings: dict[str, Any] = {}
    problems: list[str] = []
    base_dir = Path.cwd()

    if config_path is not None:
        config_path = Path(config_path).expanduser()
        document = _normalize_keys(_read_config_file(config_path))
        base_dir = config_path.parent
        backup = _normalize_keys(document.get("backup"))
        store = _normalize_keys(document.get("store"))

        if "retentionpolicypath" in backup:
            settings["policy_path"] = backup["retentionpolicypath"]
        if "timeoutminutes" in backup:
            settings["timeout_minutes"] = backup["timeoutminutes"]
        if "dryrun" in backup:
            settings["dry_run"] = backup["dryrun"]
        if "root" in store:
            settings["store_root"] = store["root"]
        if "loglevel" in document:
            settings["log_level"] = document["loglevel"]

    env_overrides = {
        "policy_path": os.getenv(f"{ENV_PREFIX}POLICY_PATH"),
        "store_root": os.getenv(f"{ENV_PREFIX}STORE_ROOT"),
        "timeout_minutes": os.getenv(f"{ENV_PREFIX}TIMEOUT_MINUTES"),
        "log_level": os.getenv(f"{ENV_PREFIX}LOG_LEVEL"),
        "dry_run": os.getenv(f"{ENV_PREFIX}DRY_RUN"),
    }
    for key, value in env_overrides.items():
        if value is not None and value != "":
            settings[key] = value

    kwargs: dict[str, Any] = {"config_path": config_path}
    for key in ("policy_path", "store_root"):
        if settings.get(key):
            path = Path(str(settings[key])).expanduser()
            kwargs[key] = path if path.is_absolute() else base_dir / path
    if "timeout_minutes" in settings:
        kwargs["timeout_minutes"] = _parse_int("timeout_minutes", settings["timeout_minutes"], problems)
    if "dry_run" in settings:
        kwargs["dry_run"] = _parse_bool("dry_run", settings["dry_run"], problems)
    if "log_level" in settings:
        kwargs["log_level"] = str(settings["log_level"]).upper()

    if problems:
        raise ConfigurationError(problems)

    return Config(**kwargs)


_config: Config | None = None


def get_config() -> Config:
    """Get the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
        logger.debug(f"Configuration loaded: {_config.to_dict()}")
    return _config


def reset_config() -> None:
    """Forget the cached configuration (tests and reloads)."""
    global _config
    _config = None
