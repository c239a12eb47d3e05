"""Message builder: turns release metadata into a webhook message document.

The builder is a pure function of its inputs. It produces a fixed skeleton
(header, version/author fields, release notes, buttons) and then runs a
list of optional build steps over it. Each step has its own predicate on
the notification config, so every inclusion rule can be tested on its own.

Architecture:
- ``build_skeleton`` renders the blocks every notification has
- Each ``BuildStep`` pairs a predicate with a transformation of the document
- Steps run in order; a step whose predicate is false leaves the document
  untouched
- Draft suppression happens before any of this, and is the only way the
  builder returns ``None``
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from release_notifier.logging_config import get_logger
from release_notifier.schemas import MessageDocument, NotificationConfig, ReleaseMetadata

logger = get_logger(__name__)

MAX_BODY_LENGTH = 500
NO_NOTES_TEXT = "No release notes provided."
TRUNCATION_MARKER = "..."
READ_MORE_TEXT = "Read more"
ACTION_ITEM_SEPARATOR = " | "
ACTION_ITEMS_LABEL = "📝 *Action Items:*"
MENTIONS_LABEL = "👥 *Team Notification:*"


@dataclass(frozen=True)
class ReleaseLabel:
    """Wording used in the header and summary for a release type."""

    text: str
    emoji: str


NEW_RELEASE = ReleaseLabel(text="🚀 New Release", emoji=":rocket:")
PRE_RELEASE = ReleaseLabel(text="🚧 Pre-release", emoji=":construction:")


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def release_label(is_prerelease: bool) -> ReleaseLabel:
    """Pick the label for a release. Draft status never affects it."""
    return PRE_RELEASE if is_prerelease else NEW_RELEASE


def format_release_body(body: str | None, release_url: str) -> str:
    """Format release notes for the message.

    Empty notes are replaced with a placeholder. Notes longer than
    ``MAX_BODY_LENGTH`` characters are cut at exactly that length and
    followed by a link to the full release page.

    Args:
        body: Raw release notes
        release_url: Release page URL used for the "Read more" link

    Returns:
        The text to show in the release notes section
    """
    if not body:
        return NO_NOTES_TEXT
    if len(body) > MAX_BODY_LENGTH:
        return (
            f"{body[:MAX_BODY_LENGTH]}{TRUNCATION_MARKER} "
            f"<{release_url}|{READ_MORE_TEXT}>"
        )
    return body


def mention_token(user_id: str) -> str:
    return f"<@{user_id}>"


def _plain_text(text: str) -> dict[str, Any]:
    return {"type": "plain_text", "text": text, "emoji": True}


def _mrkdwn(text: str) -> dict[str, Any]:
    return {"type": "mrkdwn", "text": text}


def _button(text: str, url: str, style: str | None = None) -> dict[str, Any]:
    button: dict[str, Any] = {"type": "button", "text": _plain_text(text), "url": url}
    if style:
        button["style"] = style
    return button


# ---------------------------------------------------------------------------
# Skeleton
# ---------------------------------------------------------------------------


def build_skeleton(metadata: ReleaseMetadata) -> MessageDocument:
    """Render the blocks every release notification contains."""
    label = release_label(metadata.is_prerelease)
    repo_name = metadata.repository_short_name
    notes = format_release_body(metadata.body, metadata.html_url)

    return MessageDocument(
        text=f"{label.text} Alert: {repo_name} {metadata.tag}",
        blocks=[
            {
                "type": "header",
                "text": _plain_text(f"{label.emoji} {label.text}: {repo_name}"),
            },
            {
                "type": "section",
                "fields": [
                    _mrkdwn(f"*Version:*\n{metadata.tag}"),
                    _mrkdwn(f"*Released by:*\n{metadata.author_login}"),
                ],
            },
            {
                "type": "section",
                "text": _mrkdwn(f"*Release Notes:*\n{notes}"),
            },
            {
                "type": "actions",
                "elements": [
                    _button("View Release", metadata.html_url, style="primary"),
                    _button("View Repository", metadata.repository_url),
                ],
            },
        ],
    )


# ---------------------------------------------------------------------------
# Optional build steps
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BuildStep:
    """An optional transformation of the message document.

    Attributes:
        name: Step identifier, used in logs
        applies: Predicate deciding whether the step runs for a config
        apply: Returns a new document with the step's content added
    """

    name: str
    applies: Callable[[NotificationConfig], bool]
    apply: Callable[[MessageDocument, NotificationConfig], MessageDocument]


def _append_block(document: MessageDocument, block: dict[str, Any]) -> MessageDocument:
    return document.model_copy(update={"blocks": [*document.blocks, block]})


def apply_channel_override(
    document: MessageDocument, config: NotificationConfig
) -> MessageDocument:
    return document.model_copy(update={"channel": config.channel_override})


def append_action_items(
    document: MessageDocument, config: NotificationConfig
) -> MessageDocument:
    items = ACTION_ITEM_SEPARATOR.join(config.action_items)
    return _append_block(
        document,
        {"type": "context", "elements": [_mrkdwn(f"{ACTION_ITEMS_LABEL} {items}")]},
    )


def append_mentions(
    document: MessageDocument, config: NotificationConfig
) -> MessageDocument:
    mentions = " ".join(mention_token(user_id) for user_id in config.mention_ids)
    return _append_block(
        document,
        {"type": "section", "text": _mrkdwn(f"{MENTIONS_LABEL} {mentions}")},
    )


CHANNEL_OVERRIDE_STEP = BuildStep(
    name="channel_override",
    applies=lambda config: bool(config.channel_override),
    apply=apply_channel_override,
)
ACTION_ITEMS_STEP = BuildStep(
    name="action_items",
    applies=lambda config: bool(config.action_items),
    apply=append_action_items,
)
MENTIONS_STEP = BuildStep(
    name="mentions",
    applies=lambda config: bool(config.mention_ids),
    apply=append_mentions,
)

# Applied in order; action items always come before mentions.
DEFAULT_STEPS: list[BuildStep] = [
    CHANNEL_OVERRIDE_STEP,
    ACTION_ITEMS_STEP,
    MENTIONS_STEP,
]


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


def should_notify(metadata: ReleaseMetadata, config: NotificationConfig) -> bool:
    """Drafts are only announced when the config opts in."""
    return not metadata.is_draft or config.notify_on_drafts


def build_message(
    metadata: ReleaseMetadata,
    config: NotificationConfig,
    steps: list[BuildStep] | None = None,
) -> MessageDocument | None:
    """Build the notification for a release.

    Args:
        metadata: The release to announce
        config: Notification options
        steps: Optional build steps to run. Uses DEFAULT_STEPS if None.

    Returns:
        The message document, or None when the release is a draft and the
        config does not opt in to draft notifications
    """
    if not should_notify(metadata, config):
        logger.info(
            "notification_suppressed",
            reason="draft_release",
            repository=metadata.repository_name,
            tag=metadata.tag,
        )
        return None

    steps = DEFAULT_STEPS if steps is None else steps

    document = build_skeleton(metadata)
    applied = []
    for step in steps:
        if step.applies(config):
            document = step.apply(document, config)
            applied.append(step.name)

    logger.debug(
        "message_built",
        repository=metadata.repository_name,
        tag=metadata.tag,
        blocks=len(document.blocks),
        steps=applied,
    )
    return document


def build_test_message(sent_at: datetime) -> MessageDocument:
    """Build the fixed message used to check that a webhook works.

    Args:
        sent_at: Timestamp shown in the message

    Returns:
        A message document that does not depend on any release
    """
    return MessageDocument(
        text="🧪 Webhook Test from Release Notifier",
        blocks=[
            {"type": "header", "text": _plain_text("🧪 Webhook Test Message")},
            {
                "type": "section",
                "text": _mrkdwn(
                    "*Status:* ✅ Your Slack webhook is working correctly!\n"
                    f"*Test Time:* {sent_at.isoformat()}"
                ),
            },
            {
                "type": "section",
                "text": _mrkdwn(
                    "*Next Steps:*\n"
                    "• Add `SLACK_WEBHOOK_URL` to your GitHub repository secrets\n"
                    "• Create a release to test the full workflow\n"
                    "• Customize your notification settings"
                ),
            },
            {
                "type": "context",
                "elements": [_mrkdwn("🚀 Sent from Release Notifier test command")],
            },
        ],
    )
