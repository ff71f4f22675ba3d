"""Date-triggered transition rules and rule-table validation."""

from __future__ import annotations

import enum
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_
from sqlalchemy.sql.elements import ColumnElement

from estateops.exceptions import RuleConfigurationException
from estateops.models.enums import SubjectType

if TYPE_CHECKING:
    from estateops.modules.lifecycle.subjects import SubjectRegistry


@dataclass(frozen=True)
class DateWindow:
    """Holds when ``as_of + min_days <= subject.<field> <= as_of + max_days``.

    Either bound may be ``None`` (open). A null gating date never matches.
    """

    field: str
    min_days: int | None = None
    max_days: int | None = None

    def bounds(self, as_of: date) -> tuple[date | None, date | None]:
        lower = as_of + timedelta(days=self.min_days) if self.min_days is not None else None
        upper = as_of + timedelta(days=self.max_days) if self.max_days is not None else None
        return lower, upper

    def clause(self, model: type, as_of: date) -> ColumnElement[bool]:
        column = getattr(model, self.field)
        lower, upper = self.bounds(as_of)
        conditions = [column.isnot(None)]
        if lower is not None:
            conditions.append(column >= lower)
        if upper is not None:
            conditions.append(column <= upper)
        return and_(*conditions)

    def matches(self, subject: Any, as_of: date) -> bool:
        value = getattr(subject, self.field)
        if value is None:
            return False
        lower, upper = self.bounds(as_of)
        if lower is not None and value < lower:
            return False
        if upper is not None and value > upper:
            return False
        return True

    def overlaps(self, other: DateWindow) -> bool:
        if self.field != other.field:
            # Different gating columns can always hold at the same time
            return True
        low = max(_lower_key(self.min_days), _lower_key(other.min_days))
        high = min(_upper_key(self.max_days), _upper_key(other.max_days))
        return low <= high


def _lower_key(days: int | None) -> float:
    return float("-inf") if days is None else days


def _upper_key(days: int | None) -> float:
    return float("inf") if days is None else days


@dataclass(frozen=True)
class TransitionRule:
    rule_id: str
    subject_type: SubjectType
    source_status: enum.Enum
    target_status: enum.Enum
    window: DateWindow
    milestone_key: str | None = None
    milestone_field: str | None = None

    @property
    def is_milestone_only(self) -> bool:
        return self.source_status == self.target_status

    @property
    def has_milestone(self) -> bool:
        return self.milestone_key is not None


def rules_for(rules: Iterable[TransitionRule], subject_type: SubjectType) -> list[TransitionRule]:
    return [rule for rule in rules if rule.subject_type == subject_type]


def validate_rule_table(
    rules: Iterable[TransitionRule], registry: SubjectRegistry
) -> None:
    """Reject an ambiguous or inconsistent rule table before any record is touched.

    Raises:
        RuleConfigurationException: on the first inconsistency found.
    """
    rules = list(rules)
    seen_ids: set[str] = set()

    for rule in rules:
        if rule.rule_id in seen_ids:
            raise RuleConfigurationException(f"Duplicate rule id '{rule.rule_id}'")
        seen_ids.add(rule.rule_id)

        binding = registry.get(rule.subject_type)

        if (rule.milestone_key is None) != (rule.milestone_field is None):
            raise RuleConfigurationException(
                f"Rule '{rule.rule_id}' must set milestone_key and milestone_field together"
            )
        if rule.is_milestone_only and not rule.has_milestone:
            raise RuleConfigurationException(
                f"Rule '{rule.rule_id}' does not change status and has no milestone"
            )

        for status in (rule.source_status, rule.target_status):
            if not isinstance(status, binding.status_enum):
                raise RuleConfigurationException(
                    f"Rule '{rule.rule_id}': status {status!r} is not a "
                    f"{binding.status_enum.__name__}"
                )

        columns = [rule.window.field]
        if rule.milestone_field is not None:
            columns.append(rule.milestone_field)
        for column in columns:
            if column not in binding.model.__table__.columns:
                raise RuleConfigurationException(
                    f"Rule '{rule.rule_id}': {binding.model.__name__} has no column '{column}'"
                )

    status_changing = [rule for rule in rules if not rule.is_milestone_only]
    _check_ambiguous_overlaps(status_changing)
    _check_no_cycles(status_changing)


def _check_ambiguous_overlaps(rules: list[TransitionRule]) -> None:
    by_source: dict[tuple[SubjectType, enum.Enum], list[TransitionRule]] = defaultdict(list)
    for rule in rules:
        by_source[(rule.subject_type, rule.source_status)].append(rule)

    for group in by_source.values():
        for i, first in enumerate(group):
            for second in group[i + 1 :]:
                if first.target_status != second.target_status and first.window.overlaps(
                    second.window
                ):
                    raise RuleConfigurationException(
                        f"Rules '{first.rule_id}' and '{second.rule_id}' share source "
                        f"{first.source_status.value} with overlapping windows"
                    )


def _check_no_cycles(rules: list[TransitionRule]) -> None:
    graphs: dict[SubjectType, dict[enum.Enum, set[enum.Enum]]] = defaultdict(
        lambda: defaultdict(set)
    )
    for rule in rules:
        graphs[rule.subject_type][rule.source_status].add(rule.target_status)

    for subject_type, graph in graphs.items():
        visiting: set[enum.Enum] = set()
        done: set[enum.Enum] = set()

        def visit(node: enum.Enum) -> None:
            if node in done:
                return
            if node in visiting:
                raise RuleConfigurationException(
                    f"Transition rules for {subject_type.value} contain a cycle "
                    f"through {node.value}"
                )
            visiting.add(node)
            for target in graph.get(node, ()):
                visit(target)
            visiting.discard(node)
            done.add(node)

        for start in list(graph):
            visit(start)
