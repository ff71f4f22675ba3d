"""LifecyclePromoter — applies date-triggered transition rules to subjects."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from estateops.clock import Clock, SystemClock
from estateops.exceptions import RuleConfigurationException
from estateops.models.enums import SubjectType
from estateops.modules.lifecycle.constants import TRANSITION_RULES
from estateops.modules.lifecycle.rules import TransitionRule, rules_for, validate_rule_table
from estateops.modules.lifecycle.subjects import (
    SubjectRegistry,
    SubjectRepository,
    build_default_registry,
)
from estateops.modules.notifications.queue_service import NotificationQueueService

logger = logging.getLogger(__name__)


class LifecyclePromoter:
    """Generic promoter driven entirely by the transition rule table.

    Each rule is applied as one conditional bulk write; every record it moves
    gets its milestone notification enqueued in the same transaction.
    """

    def __init__(
        self,
        db: AsyncSession,
        registry: SubjectRegistry | None = None,
        queue: NotificationQueueService | None = None,
        rules: Sequence[TransitionRule] = TRANSITION_RULES,
        clock: Clock | None = None,
    ) -> None:
        self.db = db
        self.clock = clock or SystemClock()
        self.registry = registry or build_default_registry()
        self.queue = queue or NotificationQueueService(db, clock=self.clock)
        self.rules = tuple(rules)
        self.rules_by_id = {r.rule_id: r for r in self.rules}

    def validate(self) -> None:
        validate_rule_table(self.rules, self.registry)

    def resolve_rule(
        self, subject_type: SubjectType, rule: TransitionRule | str
    ) -> TransitionRule:
        if isinstance(rule, str):
            rule_id = rule
            rule = self.rules_by_id.get(rule_id)
            if rule is None:
                raise RuleConfigurationException(f"Unknown transition rule '{rule_id}'")
        if rule.subject_type != subject_type:
            raise RuleConfigurationException(
                f"Rule '{rule.rule_id}' applies to {rule.subject_type.value}, "
                f"not {subject_type.value}"
            )
        if subject_type not in self.registry:
            raise RuleConfigurationException(
                f"Subject type '{subject_type.value}' is not registered"
            )
        return rule

    async def promote(
        self,
        subject_type: SubjectType,
        rule: TransitionRule | str,
        as_of: date,
    ) -> int:
        """Apply one rule as of ``as_of``; returns the number of records promoted.

        Flushes but does not commit; the caller owns the transaction.
        """
        rule = self.resolve_rule(subject_type, rule)
        binding = self.registry.get(subject_type)
        repository = SubjectRepository(self.db, binding)

        promoted_ids = await repository.advance(
            rule.source_status,
            rule.window.clause(binding.model, as_of),
            rule.target_status,
            rule.milestone_field,
        )

        if rule.has_milestone:
            for subject_id in promoted_ids:
                await self.queue.enqueue_if_absent(
                    subject_type, subject_id, rule.milestone_key
                )

        await self.db.flush()
        logger.info(
            "Rule %s promoted %d %s record(s) as of %s",
            rule.rule_id,
            len(promoted_ids),
            subject_type.value,
            as_of.isoformat(),
        )
        return len(promoted_ids)

    async def run_rules(self, subject_type: SubjectType, as_of: date) -> dict:
        """Run every rule of a subject type in table order, committing per rule.

        A failing rule is rolled back and counted; the remaining rules still
        run. A misconfigured rule table aborts the whole run.
        """
        self.validate()
        self.registry.get(subject_type)

        stats = {"rules": 0, "promoted": 0, "errors": 0}
        for rule in rules_for(self.rules, subject_type):
            stats["rules"] += 1
            try:
                stats["promoted"] += await self.promote(subject_type, rule, as_of)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                logger.exception(
                    "Error applying rule %s to %s", rule.rule_id, subject_type.value
                )
                stats["errors"] += 1

        return stats
