"""
Command line interface for pgshelf.

Usage:
    pgshelf --validate retention.json
    pgshelf --explain 2024-01-10 --now 2024-01-25 --policy retention.json
    pgshelf --sweep /var/backups/pgshelf --dry-run
"""

from __future__ import annotations

import argparse
import json
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from pgshelf.errors import ConfigurationError, PgShelfError, PolicyConfigurationError
from pgshelf.retention.loader import load_retention_policy
from pgshelf.retention.policy import RetentionPolicy, as_utc
from pgshelf.retention.sweeper import RetentionSweeper
from pgshelf.store.local import LocalDirectoryStore
from pgshelf.utils.config import Config, get_config


def _parse_moment(value: str) -> datetime:
    try:
        return as_utc(datetime.fromisoformat(value))
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid date or datetime: '{value}'") from e


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pgshelf",
        description="pgshelf retention management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Validate a policy document:
    pgshelf --validate retention.json

  Explain the decision for one backup date:
    pgshelf --explain 2024-01-10 --now 2024-01-25 --policy retention.json

  Preview a sweep of a local backup tree:
    pgshelf --sweep /var/backups/pgshelf --dry-run
""",
    )

    # Action flags
    parser.add_argument(
        "--validate",
        type=str,
        metavar="PATH",
        help="Validate a retention policy document and list its rules",
    )
    parser.add_argument(
        "--explain",
        type=_parse_moment,
        metavar="DATE",
        help="Explain whether a backup created at DATE is kept",
    )
    parser.add_argument(
        "--sweep",
        type=str,
        nargs="?",
        const="",
        metavar="DIR",
        help="Apply the policy to a local backup tree (default: configured store root)",
    )

    # Options
    parser.add_argument(
        "--policy",
        type=str,
        help="Retention policy document (default: configured policy)",
    )
    parser.add_argument(
        "--now",
        type=_parse_moment,
        help="Reference time for the policy (default: current UTC time)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be deleted without deleting",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON",
    )
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress output except errors",
    )
    return parser


def _configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level)


def _load_policy(args: argparse.Namespace, config: Config) -> RetentionPolicy:
    if args.policy:
        return load_retention_policy(args.policy)
    return config.load_policy()


def _validate(path: str) -> int:
    policy = load_retention_policy(path)
    print(f"Policy is valid: {path}")
    for index, rule in enumerate(policy.rules, start=1):
        print(f"  {index}. {rule}")
    return 0


def _explain(args: argparse.Namespace, config: Config) -> int:
    policy = _load_policy(args, config)
    now = args.now or datetime.now(timezone.utc)
    decision = policy.explain(args.explain, now)

    if args.json:
        print(json.dumps(decision.to_dict(), indent=2))
        return 0

    verdict = "KEEP" if decision.keep else "DELETE"
    print(f"{decision.moment:%Y-%m-%d %H:%M:%S} as of {decision.now:%Y-%m-%d %H:%M:%S}: {verdict}")
    if decision.rule is None:
        print("  No rule covers this date; uncovered backups are kept")
    else:
        print(f"  Rule {decision.rule_number}: {decision.rule}")
        print(
            f"  Day {decision.day_number} since reference epoch, "
            f"interval {decision.rule.interval_days} days"
        )
    return 0


def _sweep(args: argparse.Namespace, config: Config) -> int:
    root = Path(args.sweep) if args.sweep else config.store_root
    if root is None:
        print("Error: no directory given and PGSHELF_STORE_ROOT is not set", file=sys.stderr)
        return 1

    policy = _load_policy(args, config)
    store = LocalDirectoryStore(root, create=False)

    cancel_event = threading.Event()
    timer = threading.Timer(config.timeout_seconds, cancel_event.set)
    timer.daemon = True
    timer.start()
    try:
        sweeper = RetentionSweeper(
            store,
            policy,
            dry_run=args.dry_run or config.dry_run,
            cancel_event=cancel_event,
        )
        report = sweeper.sweep(now=args.now)
    finally:
        timer.cancel()

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        prefix = "Would delete" if report.dry_run else "Deleted"
        print(f"{prefix} {len(report.evicted)} backups and {len(report.pruned)} empty nodes")
        print(f"Kept {report.artifacts_kept} backups across {report.nodes_visited} nodes")
        for error in report.errors:
            print(f"  error: {error}")
        if report.cancelled:
            print(f"Sweep cancelled after {config.timeout_minutes} minutes")

    return 0 if report.success and not report.cancelled else 1


def main(argv: list[str] | None = None) -> int:
    """
    CLI entry point.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = get_config()
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    _configure_logging("ERROR" if args.quiet else config.log_level)

    try:
        if args.validate:
            return _validate(args.validate)
        elif args.explain:
            return _explain(args, config)
        elif args.sweep is not None:
            return _sweep(args, config)
        else:
            parser.print_help()
            return 0

    except PolicyConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except PgShelfError as e:
        logger.error(f"Operation failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
