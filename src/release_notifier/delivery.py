"""Webhook delivery client.

This module posts a message document to an incoming webhook and classifies
what happened:
- 2xx response -> DeliverySuccess
- any other response -> DeliveryFailure (status code and body kept)
- no response at all (DNS, refused connection, TLS, timeout) -> TransportError
- a URL httpx cannot parse -> TransportError with code INVALID_URL

Design notes:
- Uses httpx for async HTTP requests
- Exactly one attempt per call; retrying is left to the caller
- The body is serialized up front, so either the whole document is sent or
  nothing is
- Uses a Protocol so the notifier doesn't depend on the concrete client
  (makes testing with mocks easy)
"""

from __future__ import annotations

import json
from typing import Protocol
from urllib.parse import urlsplit

import httpx

from release_notifier import __version__
from release_notifier.logging_config import get_logger
from release_notifier.schemas import (
    TIMEOUT_CODE,
    DeliveryFailure,
    DeliveryResult,
    DeliverySuccess,
    MessageDocument,
    TransportError,
)

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 10.0
USER_AGENT = f"release-notifier/{__version__}"
INVALID_URL_CODE = "INVALID_URL"


def redact_webhook_url(url: str) -> str:
    """Keep scheme and host of a webhook URL, masking the secret path."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return "<invalid url>"
    if not parts.scheme or not parts.netloc:
        return "<invalid url>"
    return f"{parts.scheme}://{parts.netloc}/***"


def serialize_document(document: MessageDocument) -> bytes:
    """Encode a message document as UTF-8 JSON."""
    return json.dumps(document.to_payload(), ensure_ascii=False).encode("utf-8")


def _transport_error_code(exc: httpx.TransportError) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return TIMEOUT_CODE
    if isinstance(exc, httpx.ConnectError):
        return "CONNECT_ERROR"
    if isinstance(exc, httpx.ProxyError):
        return "PROXY_ERROR"
    if isinstance(exc, httpx.ProtocolError):
        return "PROTOCOL_ERROR"
    if isinstance(exc, httpx.UnsupportedProtocol):
        return "UNSUPPORTED_PROTOCOL"
    return "NETWORK_ERROR"


# ---------------------------------------------------------------------------
# Protocol (Interface)
# ---------------------------------------------------------------------------


class WebhookClientProtocol(Protocol):
    """Protocol defining the interface for webhook delivery."""

    async def send(self, endpoint_url: str, document: MessageDocument) -> DeliveryResult:
        """Post a message document to a webhook endpoint.

        Args:
            endpoint_url: Incoming webhook URL
            document: The message to deliver

        Returns:
            The classified delivery result
        """
        ...


# ---------------------------------------------------------------------------
# Concrete Implementation
# ---------------------------------------------------------------------------


class WebhookClient:
    """Incoming-webhook client using httpx.

    Usage:
        client = WebhookClient(timeout=10.0)
        result = await client.send("https://hooks.slack.com/services/...", doc)
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the webhook client.

        Args:
            timeout: Seconds before the request is cancelled
            user_agent: Value of the User-Agent header
            transport: Optional httpx transport (used by tests)
        """
        self._timeout = timeout
        self._transport = transport
        self._headers: dict[str, str] = {
            "Content-Type": "application/json",
            "User-Agent": user_agent,
        }

    async def send(self, endpoint_url: str, document: MessageDocument) -> DeliveryResult:
        """Post the document once and classify the outcome.

        Transport faults are returned as TransportError rather than raised.

        Args:
            endpoint_url: Incoming webhook URL
            document: The message to deliver

        Returns:
            DeliverySuccess, DeliveryFailure or TransportError
        """
        data = serialize_document(document)
        headers = {**self._headers, "Content-Length": str(len(data))}
        target = redact_webhook_url(endpoint_url)

        logger.debug("delivery_started", endpoint=target, content_length=len(data))

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(endpoint_url, content=data, headers=headers)
        except httpx.InvalidURL as exc:
            cause = str(exc) or "Invalid URL"
            logger.warning(
                "delivery_transport_error",
                endpoint=target,
                code=INVALID_URL_CODE,
                cause=cause,
            )
            return TransportError(cause=cause, code=INVALID_URL_CODE)
        except httpx.TransportError as exc:
            code = _transport_error_code(exc)
            cause = str(exc) or exc.__class__.__name__
            if code == TIMEOUT_CODE:
                cause = f"Request timeout ({self._timeout:g} seconds): {cause}"
            logger.warning(
                "delivery_transport_error", endpoint=target, code=code, cause=cause
            )
            return TransportError(cause=cause, code=code)

        if 200 <= response.status_code < 300:
            logger.debug(
                "delivery_succeeded", endpoint=target, status_code=response.status_code
            )
            return DeliverySuccess(status_code=response.status_code, body=response.text)

        logger.warning(
            "delivery_rejected",
            endpoint=target,
            status_code=response.status_code,
            body=response.text,
        )
        return DeliveryFailure(status_code=response.status_code, body=response.text)


# ---------------------------------------------------------------------------
# Mock Implementation (for testing)
# ---------------------------------------------------------------------------


class MockWebhookClient:
    """Mock webhook client that records documents instead of sending them.

    Usage:
        client = MockWebhookClient()
        await client.send("https://hooks.example.com/services/x", doc)
        assert client.sent == [("https://hooks.example.com/services/x", doc)]
    """

    def __init__(self, result: DeliveryResult | None = None) -> None:
        """Initialize with the result every send() should return.

        Args:
            result: Result to return. Defaults to a 200 "ok" success.
        """
        self._result = result or DeliverySuccess(status_code=200, body="ok")
        self.sent: list[tuple[str, MessageDocument]] = []

    async def send(self, endpoint_url: str, document: MessageDocument) -> DeliveryResult:
        self.sent.append((endpoint_url, document))
        return self._result
