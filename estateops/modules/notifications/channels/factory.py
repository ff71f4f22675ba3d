"""Channel factory — select the delivery channel configured for this worker."""

from __future__ import annotations

from estateops.config import settings
from estateops.modules.notifications.channels.base import NotificationChannel
from estateops.modules.notifications.channels.logging_channel import LoggingChannel
from estateops.modules.notifications.channels.webhook import WebhookChannel

_instances: dict[str, NotificationChannel] = {}


def get_channel(name: str | None = None) -> NotificationChannel:
    name = name or settings.notification_channel
    if name not in _instances:
        if name == "log":
            _instances[name] = LoggingChannel()
        elif name == "webhook":
            _instances[name] = WebhookChannel()
        else:
            raise ValueError(f"No notification channel named: {name}")
    return _instances[name]


async def close_channels() -> None:
    """Close network clients on all cached channels.

    Must be called at the end of each asyncio.run() invocation in Celery tasks
    so that no client outlives its event loop.
    """
    for channel in _instances.values():
        await channel.aclose()
    _instances.clear()
