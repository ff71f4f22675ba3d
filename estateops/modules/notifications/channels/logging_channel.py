"""Channel that only records deliveries in the application log."""

from __future__ import annotations

import logging
import uuid

from estateops.models.enums import SubjectType
from estateops.modules.notifications.channels.base import NotificationChannel

logger = logging.getLogger(__name__)


class LoggingChannel(NotificationChannel):
    async def send(
        self, subject_type: SubjectType, subject_id: uuid.UUID, milestone_key: str
    ) -> bool:
        logger.info(
            "Notification %s for %s %s", milestone_key, subject_type.value, subject_id
        )
        return True
