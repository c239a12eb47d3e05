"""Release notifier orchestrator and command-line entry point.

This module ties together all the components:
- Configuration (config.py)
- Release context (context/github.py)
- Message building (builder.py)
- Webhook delivery (delivery.py)

The notifier follows this flow:
1. Load settings and fail fast if the webhook URL is missing
2. Read and validate the release metadata
3. Build the message, or stop quietly for a suppressed draft
4. Post it once and report the outcome

Exit codes:
    0  message sent, draft suppressed, or dry run
    1  the webhook rejected the message or could not be reached
    2  configuration or release data is missing or invalid
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from datetime import UTC, datetime

from release_notifier.builder import build_message, build_test_message
from release_notifier.config import NotifierSettings, is_slack_webhook_url, load_settings
from release_notifier.context.github import resolve_release_source
from release_notifier.delivery import (
    DEFAULT_TIMEOUT,
    WebhookClient,
    WebhookClientProtocol,
    redact_webhook_url,
)
from release_notifier.errors import ConfigurationError
from release_notifier.logging_config import get_logger, setup_logging
from release_notifier.schemas import (
    DeliveryFailure,
    DeliveryResult,
    DeliverySuccess,
    NotificationConfig,
    NotificationReport,
    ReleaseMetadata,
    TransportError,
)

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_DELIVERY_FAILED = 1
EXIT_CONFIG_ERROR = 2


class ReleaseNotifier:
    """Builds and sends one release notification.

    Stateless: each call to notify() is independent.

    Usage:
        notifier = ReleaseNotifier()
        report = await notifier.notify(metadata, config, webhook_url)
    """

    def __init__(self, client: WebhookClientProtocol | None = None) -> None:
        """Initialize the notifier.

        Args:
            client: Webhook client used for delivery. Defaults to a
                    WebhookClient with the standard timeout.
        """
        self.client = client or WebhookClient()

    async def notify(
        self,
        metadata: ReleaseMetadata,
        config: NotificationConfig,
        webhook_url: str,
    ) -> NotificationReport:
        """Announce a release.

        Args:
            metadata: The release to announce
            config: Notification options
            webhook_url: Incoming webhook URL

        Returns:
            A report saying whether the message was sent or suppressed,
            with the delivery result when a send was attempted
        """
        document = build_message(metadata, config)
        if document is None:
            logger.info("no_notification_to_send", tag=metadata.tag)
            return NotificationReport(sent=False, suppressed=True)

        logger.info(
            "notification_started",
            repository=metadata.repository_name,
            tag=metadata.tag,
            endpoint=redact_webhook_url(webhook_url),
        )
        result = await self.client.send(webhook_url, document)

        if isinstance(result, DeliverySuccess):
            logger.info(
                "notification_sent",
                repository=metadata.repository_name,
                tag=metadata.tag,
                response=result.body,
            )
        else:
            logger.error(
                "notification_failed",
                repository=metadata.repository_name,
                tag=metadata.tag,
                error=result.describe(),
            )
        return NotificationReport(sent=result.ok, result=result)


# ---------------------------------------------------------------------------
# Webhook check
# ---------------------------------------------------------------------------


def check_test_response(result: DeliveryResult) -> DeliveryResult:
    """A working webhook answers the test message with 200 and body "ok"."""
    if isinstance(result, DeliverySuccess) and (
        result.status_code != 200 or result.body.strip() != "ok"
    ):
        return DeliveryFailure(status_code=result.status_code, body=result.body)
    return result


def troubleshooting_hints(result: DeliveryResult) -> list[str]:
    """Suggest fixes for a failed webhook test."""
    if isinstance(result, DeliveryFailure):
        if result.status_code == 404:
            return [
                "Webhook URL might be incorrect or expired",
                "Check if the webhook still exists in your Slack app settings",
            ]
        if result.status_code == 403:
            return [
                "The webhook might not have permission to post",
                "Check if the Slack app is still installed in your workspace",
            ]
        if result.status_code >= 400:
            return [
                "There might be an issue with the message format",
                "Check the webhook documentation for payload requirements",
            ]
        return ["Unexpected response from the webhook endpoint"]
    if isinstance(result, TransportError):
        if result.timed_out:
            return [
                "The webhook provider might be experiencing issues",
                "Try again in a few minutes",
            ]
        if result.code == "CONNECT_ERROR":
            return [
                "Check your internet connection",
                "Verify the webhook URL is correct",
            ]
    return []


# ---------------------------------------------------------------------------
# CLI Entry Point
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="release-notifier",
        description="Send a release notification to a chat webhook",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    send = subparsers.add_parser("send", help="Announce a release")
    send.add_argument("--config", "-c", help="YAML/JSON config file")
    send.add_argument(
        "--event-path",
        help="GitHub event payload file (defaults to $GITHUB_EVENT_PATH)",
    )
    send.add_argument("--webhook-url", help="Incoming webhook URL")
    send.add_argument("--channel", help="Channel override")
    send.add_argument("--mentions", help="Comma-separated user IDs to mention")
    send.add_argument("--action-items", help="Comma-separated action items")
    send.add_argument(
        "--notify-on-drafts",
        action="store_true",
        default=None,
        help="Also notify for draft releases",
    )
    send.add_argument("--timeout", type=float, help="Request timeout in seconds")
    send.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the payload instead of sending it",
    )

    test = subparsers.add_parser("test-webhook", help="Send a test message")
    test.add_argument("url", nargs="?", help="Webhook URL (defaults to $SLACK_WEBHOOK_URL)")
    test.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT)

    return parser


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def run_send(args: argparse.Namespace) -> int:
    settings: NotifierSettings = load_settings(
        config_path=args.config,
        overrides={
            "webhook_url": args.webhook_url,
            "channel": args.channel,
            "mentions": args.mentions,
            "action_items": args.action_items,
            "notify_on_drafts": args.notify_on_drafts,
            "timeout": args.timeout,
        },
    )
    setup_logging(environment=settings.environment, log_level=settings.log_level)

    # Inputs are validated before suppression is considered.
    webhook_url = None if args.dry_run else settings.require_webhook_url()
    metadata = resolve_release_source(args.event_path).load()
    config = settings.notification_config()

    if args.dry_run:
        document = build_message(metadata, config)
        _print_json(document.to_payload() if document else None)
        return EXIT_OK

    notifier = ReleaseNotifier(client=WebhookClient(timeout=settings.timeout))
    report = asyncio.run(notifier.notify(metadata, config, webhook_url))
    print(report.model_dump_json(indent=2))

    if report.sent or report.suppressed:
        return EXIT_OK
    return EXIT_DELIVERY_FAILED


def run_test_webhook(args: argparse.Namespace) -> int:
    url = args.url or os.environ.get("SLACK_WEBHOOK_URL", "")
    if not url:
        raise ConfigurationError(
            "No webhook URL provided: pass it as an argument or set SLACK_WEBHOOK_URL"
        )
    if not is_slack_webhook_url(url):
        raise ConfigurationError(
            "Invalid webhook URL format, expected "
            "https://hooks.slack.com/services/T.../B.../..."
        )

    logger.info("webhook_test_started", endpoint=redact_webhook_url(url))
    client = WebhookClient(timeout=args.timeout)
    result = check_test_response(
        asyncio.run(client.send(url, build_test_message(datetime.now(UTC))))
    )

    if result.ok:
        logger.info("webhook_test_passed", status_code=result.status_code)
        return EXIT_OK

    logger.error(
        "webhook_test_failed",
        error=result.describe(),
        hints=troubleshooting_hints(result),
    )
    return EXIT_DELIVERY_FAILED


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Usage:
        release-notifier send --event-path "$GITHUB_EVENT_PATH"
        release-notifier send --dry-run
        release-notifier test-webhook https://hooks.slack.com/services/...
    """
    setup_logging()
    args = _build_parser().parse_args(argv)

    try:
        if args.command == "test-webhook":
            return run_test_webhook(args)
        return run_send(args)
    except ConfigurationError as exc:
        logger.error("configuration_error", error=str(exc))
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    sys.exit(main())
