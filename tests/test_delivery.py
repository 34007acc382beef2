"""Tests for notification and e-mail delivery clients."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from pydantic import SecretStr

from rent_collection.config import FlatSettings
from rent_collection.delivery import (
    EmailClient,
    LoggingEmailSender,
    LoggingNotificationSink,
    NotificationClient,
    build_email_sender,
    build_notification_sink,
)
from rent_collection.errors import DeliveryError
from rent_collection.models import Email, Notification, NotificationType


@pytest.fixture
def notification():
    return Notification(
        user_id="landlord-1",
        type=NotificationType.RENT_LATE,
        title="Rent not detected",
        message="Rent for January has not been detected.",
        link="/dashboard/finances",
    )


@pytest.fixture
def email():
    return Email(
        recipient="landlord@example.com",
        subject="Rent follow-up - Reminder January 2025",
        html="<p>Hello</p>",
    )


def _response(status_code: int, payload: dict | None = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.content = b"{}" if payload is not None else b""
    response.json.return_value = payload
    return response


class TestClientInit:
    def test_strips_trailing_slash(self):
        client = NotificationClient("http://notify.local/", token="secret")

        assert client.base_url == "http://notify.local"

    def test_defaults_come_from_settings(self, monkeypatch):
        monkeypatch.setenv("HTTP_TIMEOUT", "5")
        monkeypatch.setenv("HTTP_MAX_RETRIES", "1")

        client = NotificationClient("http://notify.local")

        assert client._timeout == 5.0
        assert client._max_retries == 1

    def test_bearer_header_only_with_token(self):
        assert "Authorization" not in NotificationClient("http://x")._get_headers()
        headers = NotificationClient("http://x", token="secret")._get_headers()
        assert headers["Authorization"] == "Bearer secret"


class TestNotificationClient:
    @pytest.mark.asyncio
    async def test_posts_notification_payload(self, notification):
        client = NotificationClient("http://notify.local", token="secret")

        with patch.object(client, "_get_client") as mock_get:
            mock_http = AsyncMock()
            mock_http.post = AsyncMock(return_value=_response(201, {"id": "n-1"}))
            mock_get.return_value = mock_http

            await client.notify(notification)

            mock_http.post.assert_awaited_once()
            args, kwargs = mock_http.post.call_args
            assert args[0] == "/api/notifications"
            assert kwargs["json"] == {
                "userId": "landlord-1",
                "type": "RENT_LATE",
                "title": "Rent not detected",
                "message": "Rent for January has not been detected.",
                "link": "/dashboard/finances",
            }

    @pytest.mark.asyncio
    async def test_error_status_raises_delivery_error(self, notification):
        client = NotificationClient("http://notify.local")

        with patch.object(client, "_get_client") as mock_get:
            mock_http = AsyncMock()
            mock_http.post = AsyncMock(
                return_value=_response(422, {"detail": "unknown user"})
            )
            mock_get.return_value = mock_http

            with pytest.raises(DeliveryError) as exc_info:
                await client.notify(notification)

            assert exc_info.value.status_code == 422
            assert exc_info.value.details == {"detail": "unknown user"}

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self, notification):
        client = NotificationClient("http://notify.local", max_retries=2)

        with (
            patch.object(client, "_get_client") as mock_get,
            patch("rent_collection.delivery.asyncio.sleep", new=AsyncMock()) as mock_sleep,
        ):
            mock_http = AsyncMock()
            mock_http.post = AsyncMock(
                side_effect=[httpx.ConnectError("refused"), _response(200, {})]
            )
            mock_get.return_value = mock_http

            await client.notify(notification)

            assert mock_http.post.await_count == 2
            mock_sleep.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, notification):
        client = NotificationClient("http://notify.local", max_retries=2)

        with (
            patch.object(client, "_get_client") as mock_get,
            patch("rent_collection.delivery.asyncio.sleep", new=AsyncMock()) as mock_sleep,
        ):
            mock_http = AsyncMock()
            mock_http.post = AsyncMock(side_effect=httpx.ConnectError("refused"))
            mock_get.return_value = mock_http

            with pytest.raises(DeliveryError, match="Request failed"):
                await client.notify(notification)

            assert mock_http.post.await_count == 3
            assert [c.args[0] for c in mock_sleep.await_args_list] == [1, 2]

    @pytest.mark.asyncio
    async def test_close_releases_http_client(self):
        client = NotificationClient("http://notify.local")
        await client._get_client()
        assert client._client is not None

        await client.close()

        assert client._client is None


class TestEmailClient:
    @pytest.mark.asyncio
    async def test_posts_email_with_sender(self, email):
        client = EmailClient("http://mail.local", sender="no-reply@example.com")

        with patch.object(client, "_get_client") as mock_get:
            mock_http = AsyncMock()
            mock_http.post = AsyncMock(return_value=_response(202))
            mock_get.return_value = mock_http

            await client.send(email)

            args, kwargs = mock_http.post.call_args
            assert args[0] == "/api/emails"
            assert kwargs["json"] == {
                "from": "no-reply@example.com",
                "to": "landlord@example.com",
                "subject": "Rent follow-up - Reminder January 2025",
                "html": "<p>Hello</p>",
            }


class TestBuilders:
    def test_logging_fallbacks_without_urls(self):
        settings = FlatSettings(NOTIFICATIONS_API_URL=None, EMAIL_API_URL=None)

        assert isinstance(build_notification_sink(settings), LoggingNotificationSink)
        assert isinstance(build_email_sender(settings), LoggingEmailSender)

    def test_http_clients_when_configured(self):
        settings = FlatSettings(
            NOTIFICATIONS_API_URL="http://notify.local",
            NOTIFICATIONS_API_TOKEN=SecretStr("n-token"),
            EMAIL_API_URL="http://mail.local",
            EMAIL_SENDER="rent@example.com",
        )

        sink = build_notification_sink(settings)
        sender = build_email_sender(settings)

        assert isinstance(sink, NotificationClient)
        assert sink._token == "n-token"
        assert isinstance(sender, EmailClient)
        assert sender._sender == "rent@example.com"
        assert sender._token is None

    @pytest.mark.asyncio
    async def test_logging_sinks_accept_payloads(self, notification, email):
        await LoggingNotificationSink().notify(notification)
        await LoggingEmailSender().send(email)
