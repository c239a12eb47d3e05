"""Configuration loading for the notifier.

Settings come from three layers, later layers winning:
1. A YAML config file (JSON files work too, since JSON is valid YAML)
2. Environment variables, including GitHub Actions ``INPUT_*`` variables
3. Explicit overrides, usually from the command line

The result is a frozen ``NotifierSettings`` that is passed by parameter to
everything that needs it. Nothing reads configuration from globals after
startup.

Example ``config/slack-config.json``:
    {
      "channel": "#releases",
      "mentions": ["U024BE7LH", "U0G9QF9C6"],
      "notifyOnDrafts": false
    }
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from urllib.parse import SplitResult, urlsplit

import httpx
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from release_notifier.delivery import DEFAULT_TIMEOUT
from release_notifier.errors import ConfigurationError
from release_notifier.schemas import NotificationConfig, split_list

DEFAULT_CONFIG_PATH = Path("config") / "slack-config.json"
CONFIG_PATH_ENV = "NOTIFIER_CONFIG"

# Setting name -> environment variables checked, first non-empty wins.
ENV_VARS: dict[str, tuple[str, ...]] = {
    "webhook_url": ("SLACK_WEBHOOK_URL", "INPUT_SLACK-WEBHOOK-URL"),
    "channel": ("SLACK_CHANNEL", "INPUT_CHANNEL"),
    "mentions": ("SLACK_MENTIONS", "INPUT_MENTIONS"),
    "notify_on_drafts": ("NOTIFY_ON_DRAFTS", "INPUT_NOTIFY-ON-DRAFTS"),
    "action_items": ("ACTION_ITEMS", "INPUT_ACTION-ITEMS"),
    "timeout": ("SLACK_TIMEOUT",),
    "environment": ("ENVIRONMENT",),
    "log_level": ("LOG_LEVEL",),
}

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class NotifierSettings(BaseModel):
    """All configuration for one notifier run.

    Attributes:
        webhook_url: Incoming webhook URL (a secret)
        channel: Channel override, posted as the payload's ``channel``
        mentions: User IDs to mention
        notify_on_drafts: Also notify for draft releases
        action_items: Follow-up items listed under the message
        timeout: Seconds before the webhook request is cancelled
        environment: "development" or "production" (log rendering)
        log_level: Minimum log level
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    webhook_url: str | None = None
    channel: str | None = None
    mentions: tuple[str, ...] = ()
    notify_on_drafts: bool = False
    action_items: tuple[str, ...] = ()
    timeout: float = Field(DEFAULT_TIMEOUT, gt=0)
    environment: str = "development"
    log_level: str = "INFO"

    @field_validator("mentions", "action_items", mode="before")
    @classmethod
    def _split_items(cls, value: Any) -> Any:
        return split_list(value)

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level {value!r}")
        return level

    def notification_config(self) -> NotificationConfig:
        """Extract the options the message builder needs."""
        return NotificationConfig(
            channel_override=self.channel,
            mention_ids=self.mentions,
            notify_on_drafts=self.notify_on_drafts,
            action_items=self.action_items,
        )

    def require_webhook_url(self) -> str:
        """Return the webhook URL, failing if it is missing or malformed."""
        if not self.webhook_url:
            raise ConfigurationError(
                "A webhook URL is required: set SLACK_WEBHOOK_URL or the "
                "slack-webhook-url input"
            )
        validate_webhook_url(self.webhook_url)
        return self.webhook_url


# ---------------------------------------------------------------------------
# Webhook URL checks
# ---------------------------------------------------------------------------


def _split_url(url: str) -> SplitResult:
    """Parse a webhook URL the way both urllib and httpx will see it.

    Raises:
        ConfigurationError: If either parser rejects the URL
    """
    try:
        httpx.URL(url)
        return urlsplit(url)
    except (ValueError, httpx.InvalidURL) as exc:
        raise ConfigurationError(f"Webhook URL is malformed: {exc}") from exc


def validate_webhook_url(url: str) -> None:
    """Reject anything that is not an absolute https URL.

    Raises:
        ConfigurationError: If the URL is malformed, not https or has no host
    """
    parts = _split_url(url)
    if parts.scheme != "https" or not parts.hostname:
        raise ConfigurationError(
            "Webhook URL must be an absolute https:// URL "
            f"(got scheme {parts.scheme or 'none'!r})"
        )


def is_slack_webhook_url(url: str) -> bool:
    """Check for the ``https://<host>/services/<id-path>`` webhook shape."""
    try:
        parts = _split_url(url)
    except ConfigurationError:
        return False
    return (
        parts.scheme == "https"
        and bool(parts.hostname)
        and parts.path.startswith("/services/")
        and len(parts.path) > len("/services/")
    )


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Load a YAML or JSON config file.

    Args:
        path: Path to the configuration file.

    Returns:
        The raw settings mapping. Empty if the file doesn't exist.

    Raises:
        ConfigurationError: If the file can't be parsed or isn't a mapping.
    """
    config_path = Path(path)
    if not config_path.exists():
        return {}

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigurationError(
            f"Invalid config in {path}: expected a mapping, got {type(raw).__name__}"
        )
    return raw


def settings_from_env(env: Mapping[str, str] | None = None) -> dict[str, str]:
    """Collect settings from environment variables.

    Empty values are ignored, since CI action inputs default to "".
    """
    env = os.environ if env is None else env
    found: dict[str, str] = {}
    for setting, names in ENV_VARS.items():
        for name in names:
            value = env.get(name, "").strip()
            if value:
                found[setting] = value
                break
    return found


def default_config_path(env: Mapping[str, str] | None = None) -> Path | None:
    env = os.environ if env is None else env
    if env.get(CONFIG_PATH_ENV):
        return Path(env[CONFIG_PATH_ENV])
    if DEFAULT_CONFIG_PATH.exists():
        return DEFAULT_CONFIG_PATH
    return None


def load_settings(
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> NotifierSettings:
    """Merge config file, environment and overrides into settings.

    Args:
        config_path: Config file to read. Falls back to $NOTIFIER_CONFIG, then
                     config/slack-config.json when present.
        env: Environment mapping. Uses os.environ if None.
        overrides: Values that win over everything else. None values are
                   ignored so unset CLI flags don't clear file settings.

    Returns:
        Validated, frozen settings

    Raises:
        ConfigurationError: If any layer holds invalid values
    """
    path = Path(config_path) if config_path else default_config_path(env)
    if config_path and not Path(config_path).exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    file_values = load_config_file(path) if path else {}

    # Normalize file keys to field names so env vars can override
    # camelCase keys like "notifyOnDrafts".
    try:
        base = NotifierSettings.model_validate(file_values)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid config in {path}: {exc}") from exc

    merged: dict[str, Any] = base.model_dump()
    merged.update(settings_from_env(env))
    if overrides:
        merged.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return NotifierSettings.model_validate(merged)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid notifier settings: {exc}") from exc
