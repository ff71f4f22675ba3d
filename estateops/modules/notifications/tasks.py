"""Celery tasks for notification delivery."""

from __future__ import annotations

import asyncio
import logging

from celery_app import celery
from estateops.clock import Clock, SystemClock
from estateops.database.engine import async_session, engine
from estateops.modules.notifications.channels.factory import close_channels, get_channel
from estateops.modules.notifications.dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)

_clock: Clock = SystemClock()


async def _dispatch_notifications_async(batch_size: int | None = None) -> dict:
    """Run one dispatch cycle against the configured channel."""
    try:
        async with async_session() as session:
            dispatcher = NotificationDispatcher(session, get_channel())
            return await dispatcher.run_cycle(_clock.now(), batch_size=batch_size)
    finally:
        await close_channels()
        await engine.dispose()


@celery.task(name="estateops.modules.notifications.tasks.dispatch_notifications")
def dispatch_notifications(batch_size: int | None = None):
    """Deliver due notification tasks with bounded retries."""
    stats = asyncio.run(_dispatch_notifications_async(batch_size))
    logger.info("dispatch_notifications complete: %s", stats)
    return stats
