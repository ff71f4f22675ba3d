"""Celery tasks for date-triggered lifecycle promotion."""

from __future__ import annotations

import asyncio
import logging
from datetime import date

from celery_app import celery
from estateops.clock import Clock, SystemClock
from estateops.database.engine import async_session, engine
from estateops.database.session import session_scope
from estateops.models.enums import SubjectType
from estateops.modules.lifecycle.promoter import LifecyclePromoter

logger = logging.getLogger(__name__)

_clock: Clock = SystemClock()


def _resolve_as_of(as_of: str | None) -> date:
    return date.fromisoformat(as_of) if as_of else _clock.today()


async def _run_lifecycle_rules_async(subject_type: SubjectType, as_of: date) -> dict:
    """Apply every rule of one subject type, committing per rule."""
    try:
        async with async_session() as session:
            promoter = LifecyclePromoter(session, clock=_clock)
            stats = await promoter.run_rules(subject_type, as_of)
    finally:
        await engine.dispose()

    stats["subject_type"] = subject_type.value
    stats["as_of"] = as_of.isoformat()
    return stats


async def _promote_rule_async(subject_type: SubjectType, rule_id: str, as_of: date) -> dict:
    """Apply a single rule; committed only if the whole rule succeeds."""
    try:
        async with session_scope() as session:
            promoter = LifecyclePromoter(session, clock=_clock)
            promoter.validate()
            promoted = await promoter.promote(subject_type, rule_id, as_of)
    finally:
        await engine.dispose()

    return {
        "subject_type": subject_type.value,
        "rule_id": rule_id,
        "as_of": as_of.isoformat(),
        "promoted": promoted,
    }


# ---------------------------------------------------------------------------
# Celery task definitions
# ---------------------------------------------------------------------------


@celery.task(name="estateops.modules.lifecycle.tasks.run_lifecycle_rules")
def run_lifecycle_rules(subject_type: str, as_of: str | None = None):
    """Run the daily transition rules for one subject type."""
    stats = asyncio.run(
        _run_lifecycle_rules_async(SubjectType(subject_type), _resolve_as_of(as_of))
    )
    logger.info("run_lifecycle_rules complete: %s", stats)
    return stats


@celery.task(name="estateops.modules.lifecycle.tasks.promote_rule")
def promote_rule(subject_type: str, rule_id: str, as_of: str | None = None):
    """Apply one named transition rule (manual or backfill runs)."""
    stats = asyncio.run(
        _promote_rule_async(SubjectType(subject_type), rule_id, _resolve_as_of(as_of))
    )
    logger.info("promote_rule complete: %s", stats)
    return stats
