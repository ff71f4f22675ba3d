"""Webhook channel — POSTs each notification as JSON to a configured URL."""

from __future__ import annotations

import logging
import uuid

import httpx

from estateops.config import settings
from estateops.models.enums import SubjectType
from estateops.modules.notifications.channels.base import NotificationChannel

logger = logging.getLogger(__name__)


class WebhookChannel(NotificationChannel):
    """Delivers to an HTTP endpoint; any 2xx response counts as accepted.

    Retries are not attempted here: a failed send is reported back to the
    dispatcher, which schedules the next attempt with backoff.
    """

    def __init__(
        self,
        url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url if url is not None else settings.notification_webhook_url
        self.token = token if token is not None else settings.notification_webhook_token
        self.timeout = (
            timeout if timeout is not None else settings.notification_send_timeout_seconds
        )
        if not self.url:
            raise ValueError("notification_webhook_url must be set for the webhook channel")
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def send(
        self, subject_type: SubjectType, subject_id: uuid.UUID, milestone_key: str
    ) -> bool:
        client = await self._get_client()
        idempotency_key = f"{subject_type.value}:{subject_id}:{milestone_key}"
        headers = {"Idempotency-Key": idempotency_key}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        response = await client.post(
            self.url,
            json={
                "subject_type": subject_type.value,
                "subject_id": str(subject_id),
                "milestone_key": milestone_key,
                "idempotency_key": idempotency_key,
            },
            headers=headers,
        )
        if response.is_success:
            return True

        logger.warning(
            "Webhook rejected %s for %s %s with status %d",
            milestone_key, subject_type.value, subject_id, response.status_code,
        )
        return False

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
