"""Pydantic models defining the data that flows through the notifier.

These schemas are the single source of truth for:
- Release metadata gathered from the CI context (input)
- Notification options loaded from configuration (input)
- The chat message document sent to the webhook (output)
- The outcome of a delivery attempt (result)

Key design decisions:
- Input models are frozen: they are read once at start and never mutated
- List-like options also accept comma-separated strings, which is how
  CI action inputs arrive
- Delivery outcomes are a tagged union rather than exceptions, so callers
  decide what a failure means for them
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def split_list(value: Any) -> Any:
    """Normalize a comma-separated string or a sequence into a tuple of strings.

    Items are trimmed and empty items are dropped. Anything that is not a
    string or a sequence is passed through for pydantic to reject.
    """
    if value is None:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    if isinstance(value, (list, tuple)):
        return tuple(str(item).strip() for item in value if str(item).strip())
    return value


# ---------------------------------------------------------------------------
# Input Schemas
# ---------------------------------------------------------------------------


class ReleaseMetadata(BaseModel):
    """A published (or draft) release, as described by the CI context.

    Attributes:
        tag: Release tag (e.g., "v1.2.3")
        name: Optional display title of the release
        body: Release notes, possibly empty
        html_url: Absolute URL of the release page
        repository_name: Repository as "name" or "owner/name"
        repository_url: Absolute URL of the repository
        author_login: Login of the user who created the release
        is_prerelease: Whether the release is marked as a pre-release
        is_draft: Whether the release is still a draft
    """

    model_config = ConfigDict(frozen=True)

    tag: str = Field(..., min_length=1, description="Release tag")
    name: str | None = Field(None, description="Release display title")
    body: str | None = Field(None, description="Release notes")
    html_url: str = Field(..., min_length=1, description="Release page URL")
    repository_name: str = Field(
        ..., min_length=1, description="Repository name or owner/name"
    )
    repository_url: str = Field(..., min_length=1, description="Repository URL")
    author_login: str = Field(..., min_length=1, description="Release author")
    is_prerelease: bool = Field(False, description="Pre-release flag")
    is_draft: bool = Field(False, description="Draft flag")

    @property
    def repository_short_name(self) -> str:
        """Repository name without the owner prefix."""
        return self.repository_name.rstrip("/").split("/")[-1]


class NotificationConfig(BaseModel):
    """Options controlling what the message contains and whether it is sent.

    Attributes:
        channel_override: Channel to post to instead of the webhook default
        mention_ids: User IDs to mention, in order
        notify_on_drafts: Send notifications for draft releases too
        action_items: Short follow-up items listed under the message
    """

    model_config = ConfigDict(frozen=True)

    channel_override: str | None = None
    mention_ids: tuple[str, ...] = ()
    notify_on_drafts: bool = False
    action_items: tuple[str, ...] = ()

    @field_validator("mention_ids", "action_items", mode="before")
    @classmethod
    def _split_items(cls, value: Any) -> Any:
        return split_list(value)

    @field_validator("channel_override", mode="before")
    @classmethod
    def _blank_channel_is_unset(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


# ---------------------------------------------------------------------------
# Output Schema
# ---------------------------------------------------------------------------


class MessageDocument(BaseModel):
    """A chat message in the incoming-webhook block format.

    Attributes:
        text: Plain-text summary, shown in notifications and fallbacks
        blocks: Ordered visual blocks (header, section, actions, context)
        channel: Optional channel override consumed by the webhook provider
    """

    model_config = ConfigDict(frozen=True)

    text: str
    blocks: list[dict[str, Any]] = Field(default_factory=list)
    channel: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-ready webhook payload."""
        return self.model_dump(exclude_none=True)


# ---------------------------------------------------------------------------
# Delivery Results
# ---------------------------------------------------------------------------


# Each result carries an ``outcome`` tag:
#   success: the endpoint answered with a 2xx status
#   failure: the endpoint answered with any other status
#   transport_error: no HTTP response was received (DNS, TLS, timeout...)

TIMEOUT_CODE = "TIMEOUT"


class DeliverySuccess(BaseModel):
    """The webhook accepted the message."""

    model_config = ConfigDict(frozen=True)

    outcome: Literal["success"] = "success"
    status_code: int
    body: str = ""

    @property
    def ok(self) -> bool:
        return True

    def describe(self) -> str:
        return f"HTTP {self.status_code}: {self.body}"


class DeliveryFailure(BaseModel):
    """The webhook was reachable but rejected the message."""

    model_config = ConfigDict(frozen=True)

    outcome: Literal["failure"] = "failure"
    status_code: int
    body: str = ""

    @property
    def ok(self) -> bool:
        return False

    def describe(self) -> str:
        return f"HTTP {self.status_code}: {self.body}"


class TransportError(BaseModel):
    """The request never produced an HTTP response.

    Attributes:
        cause: Human-readable description of the underlying fault
        code: Short machine-readable fault code. ``TIMEOUT`` marks a request
              cancelled by the client timeout.
    """

    model_config = ConfigDict(frozen=True)

    outcome: Literal["transport_error"] = "transport_error"
    cause: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)

    @property
    def ok(self) -> bool:
        return False

    @property
    def timed_out(self) -> bool:
        return self.code == TIMEOUT_CODE

    def describe(self) -> str:
        return f"{self.code}: {self.cause}"


DeliveryResult = Annotated[
    Union[DeliverySuccess, DeliveryFailure, TransportError],
    Field(discriminator="outcome"),
]


class NotificationReport(BaseModel):
    """Summary of one notifier run.

    Attributes:
        sent: Whether the webhook accepted a message
        suppressed: Whether the release was skipped (draft without opt-in)
        result: The delivery result, absent when nothing was sent
    """

    sent: bool
    suppressed: bool = False
    result: DeliveryResult | None = None
