"""Abstract base class for notification delivery channels."""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod

from estateops.models.enums import SubjectType


class NotificationChannel(ABC):
    @abstractmethod
    async def send(
        self, subject_type: SubjectType, subject_id: uuid.UUID, milestone_key: str
    ) -> bool:
        """Deliver one notification; return True only if it was accepted."""

    async def aclose(self) -> None:
        """Release any network resources held by the channel."""
