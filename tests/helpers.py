"""Shared clock and rule-table helpers for the test suite."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

from estateops.modules.lifecycle.constants import TRANSITION_RULES

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)
TODAY = NOW.date()


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; treat them as UTC for comparisons."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def days_from_today(days: int) -> date:
    return TODAY + timedelta(days=days)


RULES_BY_ID = {rule.rule_id: rule for rule in TRANSITION_RULES}
