"""Tests for the notifier schemas.

These tests verify that the schemas:
- Accept valid release metadata and reject incomplete metadata
- Normalize list options given as comma-separated strings
- Serialize message documents to the webhook payload shape
- Distinguish the three delivery outcomes

Run with: pytest tests/test_schemas.py -v
"""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from release_notifier.schemas import (
    DeliveryFailure,
    DeliveryResult,
    DeliverySuccess,
    MessageDocument,
    NotificationConfig,
    NotificationReport,
    ReleaseMetadata,
    TransportError,
)


# ---------------------------------------------------------------------------
# ReleaseMetadata Tests
# ---------------------------------------------------------------------------


class TestReleaseMetadata:
    """Tests for the ReleaseMetadata model."""

    def test_defaults(self, release: ReleaseMetadata) -> None:
        """Flags default to a published, stable release."""
        assert release.is_draft is False
        assert release.is_prerelease is False

    def test_short_name_strips_owner(self, release: ReleaseMetadata) -> None:
        assert release.repository_short_name == "your-sdk"

    def test_short_name_without_owner(self, release: ReleaseMetadata) -> None:
        bare = release.model_copy(update={"repository_name": "your-sdk"})
        assert bare.repository_short_name == "your-sdk"

    def test_missing_tag_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ReleaseMetadata(
                html_url="https://github.com/o/r/releases/tag/v1",
                repository_name="o/r",
                repository_url="https://github.com/o/r",
                author_login="me",
            )

    def test_empty_author_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ReleaseMetadata(
                tag="v1",
                html_url="https://github.com/o/r/releases/tag/v1",
                repository_name="o/r",
                repository_url="https://github.com/o/r",
                author_login="",
            )

    def test_frozen(self, release: ReleaseMetadata) -> None:
        with pytest.raises(ValidationError):
            release.tag = "v9.9.9"


# ---------------------------------------------------------------------------
# NotificationConfig Tests
# ---------------------------------------------------------------------------


class TestNotificationConfig:
    """Tests for the NotificationConfig model."""

    def test_defaults(self) -> None:
        config = NotificationConfig()
        assert config.channel_override is None
        assert config.mention_ids == ()
        assert config.action_items == ()
        assert config.notify_on_drafts is False

    def test_comma_separated_strings_are_split(self) -> None:
        config = NotificationConfig(
            mention_ids="U1, U2 ,,U3",
            action_items="Update docs, Announce to stakeholders",
        )
        assert config.mention_ids == ("U1", "U2", "U3")
        assert config.action_items == ("Update docs", "Announce to stakeholders")

    def test_lists_keep_order(self) -> None:
        config = NotificationConfig(mention_ids=["U2", "U1"])
        assert config.mention_ids == ("U2", "U1")

    def test_blank_channel_is_unset(self) -> None:
        assert NotificationConfig(channel_override="  ").channel_override is None


# ---------------------------------------------------------------------------
# MessageDocument Tests
# ---------------------------------------------------------------------------


class TestMessageDocument:
    """Tests for the MessageDocument model."""

    def test_payload_omits_unset_channel(self) -> None:
        doc = MessageDocument(text="hi", blocks=[{"type": "divider"}])
        assert doc.to_payload() == {"text": "hi", "blocks": [{"type": "divider"}]}

    def test_payload_includes_channel(self) -> None:
        doc = MessageDocument(text="hi", channel="#releases")
        assert doc.to_payload()["channel"] == "#releases"


# ---------------------------------------------------------------------------
# Delivery Result Tests
# ---------------------------------------------------------------------------


class TestDeliveryResults:
    """Tests for the delivery result union."""

    def test_success_is_ok(self) -> None:
        result = DeliverySuccess(status_code=200, body="ok")
        assert result.ok
        assert result.describe() == "HTTP 200: ok"

    def test_failure_is_not_ok(self) -> None:
        result = DeliveryFailure(status_code=500, body="error")
        assert not result.ok
        assert result.describe() == "HTTP 500: error"

    def test_timeout_is_distinct(self) -> None:
        timeout = TransportError(cause="Request timeout", code="TIMEOUT")
        refused = TransportError(cause="Connection refused", code="CONNECT_ERROR")
        assert timeout.timed_out
        assert not refused.timed_out

    def test_transport_error_requires_cause(self) -> None:
        with pytest.raises(ValidationError):
            TransportError(cause="", code="CONNECT_ERROR")

    def test_union_dispatches_on_outcome(self) -> None:
        adapter = TypeAdapter(DeliveryResult)
        result = adapter.validate_python(
            {"outcome": "transport_error", "cause": "boom", "code": "NETWORK_ERROR"}
        )
        assert isinstance(result, TransportError)

    def test_report_serializes_result(self) -> None:
        report = NotificationReport(
            sent=False, result=DeliveryFailure(status_code=500, body="error")
        )
        data = report.model_dump()
        assert data["result"]["outcome"] == "failure"
        assert data["result"]["status_code"] == 500
