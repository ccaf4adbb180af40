"""
Retention policy engine for pgshelf.

A policy is an ordered list of rules. Each rule keeps one backup day out of
every ``sample_interval`` for as long as the backup is younger than the rule's
``validity_window``. The first rule whose window covers a backup governs it.

Keep days are counted from a fixed reference epoch, not from ``now``, so the
decision for a given backup only changes when it crosses into an older rule's
window. Because each rule's interval is a multiple of the previous one, a day
kept by a coarser rule was always kept by every finer rule before it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable

from pgshelf.errors import PolicyConfigurationError
from pgshelf.retention.durations import describe_duration, format_duration, parse_duration

# Shared by all evaluations; changing it reshuffles every keep day
REFERENCE_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)

_ONE_DAY = timedelta(days=1)

_INTERVAL_KEYS = ("sample_interval", "sampleinterval", "keep_every", "keepevery")
_WINDOW_KEYS = ("validity_window", "validitywindow", "duration")


def as_utc(moment: date | datetime) -> datetime:
    """
    Normalize a date or datetime to an aware UTC datetime.

    Naive datetimes are taken to be UTC and bare dates mean midnight UTC.
    """
    if isinstance(moment, datetime):
        if moment.tzinfo is None:
            return moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(timezone.utc)
    if isinstance(moment, date):
        return datetime(moment.year, moment.month, moment.day, tzinfo=timezone.utc)
    raise TypeError(f"Expected date or datetime, got {type(moment).__name__}")


def _rule_number_of(violation: str) -> int:
    match = re.match(r"Rule (\d+):", violation)
    return int(match.group(1)) if match else 0


def days_since_epoch(moment: date | datetime) -> int:
    """Whole days between the reference epoch and ``moment`` (floored)."""
    return (as_utc(moment) - REFERENCE_EPOCH) // _ONE_DAY


@dataclass(frozen=True)
class RetentionRule:
    """
    One tier of a retention policy.

    Attributes:
        sample_interval: Keep one backup day out of every interval
        validity_window: How far back from now the rule applies (None = always)
    """

    sample_interval: timedelta
    validity_window: timedelta | None = None

    @property
    def is_unbounded(self) -> bool:
        return self.validity_window is None

    @property
    def interval_days(self) -> int:
        """Sample interval in whole days."""
        return self.sample_interval // _ONE_DAY

    def problems(self) -> list[str]:
        """Return every reason this rule cannot be used (empty if valid)."""
        found = []
        if self.sample_interval <= timedelta(0):
            found.append(
                f"sample interval must be greater than zero, got {self.sample_interval}"
            )
        elif self.sample_interval % _ONE_DAY:
            found.append(
                f"sample interval must be a whole number of days, got {self.sample_interval}"
            )
        if self.validity_window is not None and self.validity_window <= timedelta(0):
            found.append(
                f"validity window must be greater than zero or null, got {self.validity_window}"
            )
        return found

    def covers(self, moment: date | datetime, now: date | datetime) -> bool:
        """Check if ``moment`` falls inside this rule's validity window."""
        if self.validity_window is None:
            return True
        # Compare ages; ``now - window`` overflows for windows past year 1
        return as_utc(now) - as_utc(moment) <= self.validity_window

    def keeps_day(self, day_number: int) -> bool:
        """Check if a day (counted from the reference epoch) is a keep day."""
        return day_number % self.interval_days == 0

    def to_document(self) -> dict[str, str | None]:
        return {
            "sample_interval": format_duration(self.sample_interval),
            "validity_window": (
                format_duration(self.validity_window)
                if self.validity_window is not None
                else None
            ),
        }

    @classmethod
    def from_document(cls, entry: dict[str, Any]) -> RetentionRule:
        """
        Build a rule from one policy document entry.

        Keys are matched case-insensitively; ``keepEvery`` and ``duration``
        are accepted as aliases.

        Raises:
            ValueError: If the entry is not an object or a duration is malformed
        """
        if not isinstance(entry, dict):
            raise ValueError(f"rule must be an object, got {type(entry).__name__}")

        normalized = {str(k).lower(): v for k, v in entry.items()}

        interval_text = next(
            (normalized[k] for k in _INTERVAL_KEYS if k in normalized), None
        )
        if interval_text is None:
            raise ValueError("sample_interval is required")
        try:
            interval = parse_duration(interval_text)
        except ValueError as e:
            raise ValueError(f"sample_interval: {e}") from e

        window_text = next((normalized[k] for k in _WINDOW_KEYS if k in normalized), None)
        window = None
        if window_text is not None:
            try:
                window = parse_duration(window_text)
            except ValueError as e:
                raise ValueError(f"validity_window: {e}") from e

        return cls(sample_interval=interval, validity_window=window)

    def __str__(self) -> str:
        every = describe_duration(self.sample_interval)
        if self.validity_window is None:
            return f"Keep every {every} indefinitely"
        return f"Keep every {every} for {describe_duration(self.validity_window)}"


@dataclass(frozen=True)
class RetentionDecision:
    """Outcome of evaluating one backup timestamp against a policy."""

    moment: datetime
    now: datetime
    keep: bool
    rule: RetentionRule | None
    rule_number: int | None  # 1-based position of the active rule
    day_number: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "moment": self.moment.isoformat(),
            "now": self.now.isoformat(),
            "keep": self.keep,
            "rule": str(self.rule) if self.rule is not None else None,
            "rule_number": self.rule_number,
            "days_since_epoch": self.day_number,
        }


class RetentionPolicy:
    """
    Ordered, validated list of retention rules.

    Immutable once constructed. Rules are evaluated in order and the first
    rule whose window covers a date decides whether it is kept.

    A date covered by no rule is kept. A policy meant to enforce a hard
    retention ceiling must therefore end with an unbounded rule; with only
    bounded rules, anything older than the longest window is never evicted.
    """

    def __init__(self, rules: Iterable[RetentionRule]):
        """
        Initialize and validate the policy.

        Args:
            rules: Rules in evaluation order

        Raises:
            PolicyConfigurationError: Listing every invalid rule and every
                interval that is not a multiple of the previous one
        """
        self._rules = tuple(rules)
        violations = self._validate(self._rules)
        if violations:
            raise PolicyConfigurationError(violations)

    @staticmethod
    def _validate(rules: tuple[RetentionRule | None, ...]) -> list[str]:
        """
        Collect every violation in ``rules``.

        ``None`` marks an entry that already failed to parse; it is skipped
        here and breaks the chain check on both sides.
        """
        if not rules:
            return ["Retention policy must contain at least one rule"]

        violations = []
        for index, rule in enumerate(rules, start=1):
            if rule is None:
                continue
            for problem in rule.problems():
                violations.append(f"Rule {index}: {problem}")

        for index in range(1, len(rules)):
            previous, current = rules[index - 1], rules[index]
            if previous is None or current is None:
                continue
            if previous.problems() or current.problems():
                continue
            if current.interval_days % previous.interval_days:
                violations.append(
                    f"Rule {index + 1}: interval of {describe_duration(current.sample_interval)} "
                    f"is not a multiple of rule {index} interval of "
                    f"{describe_duration(previous.sample_interval)}"
                )
        return violations

    @property
    def rules(self) -> tuple[RetentionRule, ...]:
        return self._rules

    def get_active_rule(
        self, moment: date | datetime, now: date | datetime
    ) -> RetentionRule | None:
        """
        Get the rule that governs ``moment`` as of ``now``.

        Args:
            moment: Creation time of the backup
            now: Reference time for validity windows

        Returns:
            First rule whose window covers ``moment``, or None
        """
        for rule in self._rules:
            if rule.covers(moment, now):
                return rule
        return None

    def should_keep(self, moment: date | datetime, now: date | datetime) -> bool:
        """
        Decide whether a backup created at ``moment`` survives as of ``now``.

        Args:
            moment: Creation time of the backup
            now: Reference time for validity windows

        Returns:
            True if the backup should be kept
        """
        rule = self.get_active_rule(moment, now)
        if rule is None:
            return True
        return rule.keeps_day(days_since_epoch(moment))

    def explain(self, moment: date | datetime, now: date | datetime) -> RetentionDecision:
        """Evaluate ``moment`` and report which rule decided and why."""
        moment_utc = as_utc(moment)
        now_utc = as_utc(now)
        day_number = days_since_epoch(moment_utc)

        for index, rule in enumerate(self._rules, start=1):
            if rule.covers(moment_utc, now_utc):
                return RetentionDecision(
                    moment=moment_utc,
                    now=now_utc,
                    keep=rule.keeps_day(day_number),
                    rule=rule,
                    rule_number=index,
                    day_number=day_number,
                )

        return RetentionDecision(
            moment=moment_utc,
            now=now_utc,
            keep=True,
            rule=None,
            rule_number=None,
            day_number=day_number,
        )

    @classmethod
    def from_document(cls, document: Any) -> RetentionPolicy:
        """
        Build a policy from a parsed policy document.

        The document is either a list of rule entries or an object with a
        ``rules`` list. Malformed entries and chain violations are reported
        together in one error.

        Raises:
            PolicyConfigurationError: If the document or any rule is invalid
        """
        if isinstance(document, dict):
            normalized = {str(k).lower(): v for k, v in document.items()}
            entries = normalized.get("rules")
        else:
            entries = document

        if not isinstance(entries, list):
            raise PolicyConfigurationError(
                ["Retention policy document must be a list of rules or contain a 'rules' list"]
            )

        parsed: list[RetentionRule | None] = []
        violations = []
        for index, entry in enumerate(entries, start=1):
            try:
                parsed.append(RetentionRule.from_document(entry))
            except ValueError as e:
                parsed.append(None)
                violations.append(f"Rule {index}: {e}")

        violations.extend(cls._validate(tuple(parsed)))
        if violations:
            violations.sort(key=_rule_number_of)
            raise PolicyConfigurationError(violations)

        return cls(parsed)

    def to_document(self) -> dict[str, list[dict[str, str | None]]]:
        return {"rules": [rule.to_document() for rule in self._rules]}

    def __len__(self) -> int:
        return len(self._rules)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RetentionPolicy):
            return NotImplemented
        return self._rules == other._rules

    def __hash__(self) -> int:
        return hash(self._rules)

    def __repr__(self) -> str:
        return f"RetentionPolicy({list(self._rules)!r})"


# Daily for two weeks thinning out to one backup a month beyond a year
DEFAULT_RULES = (
    RetentionRule(timedelta(days=1), timedelta(days=14)),
    RetentionRule(timedelta(days=2), timedelta(days=28)),
    RetentionRule(timedelta(days=4), timedelta(days=74)),
    RetentionRule(timedelta(days=8), timedelta(days=194)),
    RetentionRule(timedelta(days=16), timedelta(days=374)),
    RetentionRule(timedelta(days=32), None),
)


def default_policy() -> RetentionPolicy:
    """Policy used when no policy document is configured."""
    return RetentionPolicy(DEFAULT_RULES)
