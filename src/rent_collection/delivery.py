"""Notification and e-mail delivery.

Delivery is best-effort from the workflow's point of view: callers catch
`DeliveryError` and keep the state transition that triggered the send.
"""

import asyncio
from typing import Any, Protocol

import httpx
import structlog

from rent_collection.config import FlatSettings, get_settings
from rent_collection.errors import DeliveryError
from rent_collection.models import Email, Notification

logger = structlog.get_logger(__name__)


class NotificationSink(Protocol):
    async def notify(self, notification: Notification) -> None: ...


class EmailSender(Protocol):
    async def send(self, email: Email) -> None: ...


class _HTTPDeliveryClient:
    """Async JSON POST client with bearer auth and retry on transport errors."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
    ):
        settings = get_settings()
        self.base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout if timeout is not None else settings.http_timeout
        self._max_retries = max_retries if max_retries is not None else settings.http_max_retries
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "_HTTPDeliveryClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _post(
        self, path: str, json: dict[str, Any], retry_count: int = 0
    ) -> dict[str, Any]:
        client = await self._get_client()
        try:
            response = await client.post(path, json=json, headers=self._get_headers())
        except httpx.RequestError as e:
            if retry_count < self._max_retries:
                await asyncio.sleep(2**retry_count)  # Exponential backoff
                return await self._post(path, json, retry_count + 1)
            raise DeliveryError(f"Request failed: {e}") from e

        if response.status_code >= 400:
            try:
                details = response.json() if response.content else {}
            except ValueError:
                details = {"raw": response.text[:500] if response.text else "empty response"}
            raise DeliveryError(
                f"Delivery error: {response.status_code}",
                status_code=response.status_code,
                details=details,
            )

        if not response.content:
            return {}
        data = response.json()
        return data if isinstance(data, dict) else {}


class NotificationClient(_HTTPDeliveryClient):
    """Posts in-app notifications to the platform's notification API."""

    async def notify(self, notification: Notification) -> None:
        await self._post("/api/notifications", json=notification.to_dict())
        logger.info(
            "notification_sent",
            user_id=notification.user_id,
            type=notification.type.value,
        )


class EmailClient(_HTTPDeliveryClient):
    """Sends transactional e-mail through the platform's mail API."""

    def __init__(self, base_url: str, sender: str, **kwargs: Any):
        super().__init__(base_url, **kwargs)
        self._sender = sender

    async def send(self, email: Email) -> None:
        await self._post(
            "/api/emails",
            json={
                "from": self._sender,
                "to": email.recipient,
                "subject": email.subject,
                "html": email.html,
            },
        )
        logger.info("email_sent", recipient=email.recipient, subject=email.subject)


class LoggingNotificationSink:
    """Development sink: logs notifications instead of delivering them."""

    async def notify(self, notification: Notification) -> None:
        logger.info("notification_logged", **notification.to_dict())


class LoggingEmailSender:
    """Development sender: logs e-mails instead of delivering them."""

    async def send(self, email: Email) -> None:
        logger.info(
            "email_logged",
            recipient=email.recipient,
            subject=email.subject,
            body=email.html[:200],
        )


def build_notification_sink(settings: FlatSettings | None = None) -> NotificationSink:
    settings = settings or get_settings()
    if not settings.notifications_api_url:
        return LoggingNotificationSink()
    token = settings.notifications_api_token
    return NotificationClient(
        settings.notifications_api_url,
        token=token.get_secret_value() if token else None,
    )


def build_email_sender(settings: FlatSettings | None = None) -> EmailSender:
    settings = settings or get_settings()
    if not settings.email_api_url:
        return LoggingEmailSender()
    token = settings.email_api_token
    return EmailClient(
        settings.email_api_url,
        sender=settings.email_sender,
        token=token.get_secret_value() if token else None,
    )
