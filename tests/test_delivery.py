"""Tests for the webhook delivery client.

HTTP traffic is served by ``httpx.MockTransport``, so no request ever
leaves the process.

Run with: pytest tests/test_delivery.py -v
"""

from __future__ import annotations

import json

import httpx
import pytest

from release_notifier.delivery import (
    MockWebhookClient,
    WebhookClient,
    redact_webhook_url,
    serialize_document,
)
from release_notifier.schemas import (
    DeliveryFailure,
    DeliverySuccess,
    MessageDocument,
    TransportError,
)

WEBHOOK_URL = "https://hooks.slack.com/services/T000/B000/XXXX"


@pytest.fixture
def document() -> MessageDocument:
    return MessageDocument(
        text="🚀 New Release Alert: api v2.0.0",
        blocks=[{"type": "section", "text": {"type": "mrkdwn", "text": "Grüße ✅"}}],
        channel="#releases",
    )


def _client(handler) -> WebhookClient:
    return WebhookClient(transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------------------
# Request Tests
# ---------------------------------------------------------------------------


class TestRequest:
    """Tests for what the client puts on the wire."""

    @pytest.mark.asyncio
    async def test_posts_json_once(self, document: MessageDocument) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, text="ok")

        await _client(handler).send(WEBHOOK_URL, document)

        assert len(requests) == 1
        request = requests[0]
        assert request.method == "POST"
        assert str(request.url) == WEBHOOK_URL
        assert request.headers["content-type"] == "application/json"
        assert json.loads(request.content) == document.to_payload()

    @pytest.mark.asyncio
    async def test_content_length_counts_bytes(self, document: MessageDocument) -> None:
        seen: dict[str, object] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["length"] = request.headers["content-length"]
            seen["body"] = request.content
            return httpx.Response(200, text="ok")

        await _client(handler).send(WEBHOOK_URL, document)

        encoded = serialize_document(document)
        assert int(seen["length"]) == len(encoded)
        assert len(encoded) > len(encoded.decode("utf-8"))
        assert seen["body"] == encoded

    def test_serialization_keeps_unicode(self, document: MessageDocument) -> None:
        assert "✅".encode("utf-8") in serialize_document(document)


# ---------------------------------------------------------------------------
# Outcome Classification Tests
# ---------------------------------------------------------------------------


class TestOutcomes:
    """Tests for classifying responses and transport faults."""

    @pytest.mark.asyncio
    async def test_200_is_success(self, document: MessageDocument) -> None:
        result = await _client(lambda r: httpx.Response(200, text="ok")).send(
            WEBHOOK_URL, document
        )
        assert result == DeliverySuccess(status_code=200, body="ok")

    @pytest.mark.asyncio
    async def test_204_is_success(self, document: MessageDocument) -> None:
        result = await _client(lambda r: httpx.Response(204)).send(WEBHOOK_URL, document)
        assert isinstance(result, DeliverySuccess)
        assert result.body == ""

    @pytest.mark.asyncio
    async def test_500_is_failure(self, document: MessageDocument) -> None:
        result = await _client(lambda r: httpx.Response(500, text="error")).send(
            WEBHOOK_URL, document
        )
        assert result == DeliveryFailure(status_code=500, body="error")

    @pytest.mark.asyncio
    async def test_redirect_is_failure(self, document: MessageDocument) -> None:
        result = await _client(lambda r: httpx.Response(302, text="moved")).send(
            WEBHOOK_URL, document
        )
        assert isinstance(result, DeliveryFailure)
        assert result.status_code == 302

    @pytest.mark.asyncio
    async def test_dns_failure_is_transport_error(self, document: MessageDocument) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("[Errno -2] Name or service not known", request=request)

        result = await _client(handler).send(WEBHOOK_URL, document)

        assert isinstance(result, TransportError)
        assert not isinstance(result, DeliveryFailure)
        assert result.code == "CONNECT_ERROR"
        assert "Name or service not known" in result.cause
        assert not result.timed_out

    @pytest.mark.asyncio
    async def test_timeout_is_transport_error(self, document: MessageDocument) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        result = await _client(handler).send(WEBHOOK_URL, document)

        assert isinstance(result, TransportError)
        assert result.timed_out
        assert "10 seconds" in result.cause

    @pytest.mark.asyncio
    async def test_other_network_error(self, document: MessageDocument) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.RemoteProtocolError("peer closed connection", request=request)

        result = await _client(handler).send(WEBHOOK_URL, document)

        assert isinstance(result, TransportError)
        assert result.code == "PROTOCOL_ERROR"

    @pytest.mark.asyncio
    async def test_unparseable_url_is_transport_error(self, document: MessageDocument) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, text="ok")

        result = await _client(handler).send(WEBHOOK_URL + "\x7f", document)

        assert isinstance(result, TransportError)
        assert result.code == "INVALID_URL"
        assert not result.timed_out
        assert requests == []


# ---------------------------------------------------------------------------
# Helpers and Mock
# ---------------------------------------------------------------------------


class TestRedaction:
    def test_hides_secret_path(self) -> None:
        assert redact_webhook_url(WEBHOOK_URL) == "https://hooks.slack.com/***"

    def test_invalid_url(self) -> None:
        assert redact_webhook_url("not a url") == "<invalid url>"

    def test_unbalanced_bracket_host(self) -> None:
        assert redact_webhook_url("https://[hooks.slack.com/services/T/B/X") == "<invalid url>"


class TestMockWebhookClient:
    @pytest.mark.asyncio
    async def test_records_sent_documents(self, document: MessageDocument) -> None:
        client = MockWebhookClient()
        result = await client.send(WEBHOOK_URL, document)
        assert result.ok
        assert client.sent == [(WEBHOOK_URL, document)]

    @pytest.mark.asyncio
    async def test_returns_preset_result(self, document: MessageDocument) -> None:
        failure = DeliveryFailure(status_code=403, body="invalid_token")
        client = MockWebhookClient(result=failure)
        assert await client.send(WEBHOOK_URL, document) is failure
