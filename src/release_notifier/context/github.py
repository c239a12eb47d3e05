"""Release metadata sources for GitHub workflows.

A release notification can be triggered in two ways:
- As a workflow step on the ``release`` event, where GitHub writes the
  event payload to the file named by ``GITHUB_EVENT_PATH``
- As a script step that passes release fields through environment
  variables (``RELEASE_TAG``, ``RELEASE_URL``, ...)

Both are read here and turned into a validated ``ReleaseMetadata``. The
payload is read once at startup; nothing here touches the network.

Design notes:
- Uses a Protocol so the notifier doesn't depend on the concrete source
  (makes testing with mocks easy)
- Missing or incomplete data raises MissingReleaseDataError before any
  message is built

Event payload docs:
https://docs.github.com/en/webhooks/webhook-events-and-payloads#release
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from release_notifier.errors import MissingReleaseDataError
from release_notifier.schemas import ReleaseMetadata

EVENT_PATH_ENV = "GITHUB_EVENT_PATH"

# ReleaseMetadata field -> environment variable
RELEASE_ENV_VARS: dict[str, str] = {
    "tag": "RELEASE_TAG",
    "name": "RELEASE_NAME",
    "body": "RELEASE_BODY",
    "html_url": "RELEASE_URL",
    "repository_name": "REPOSITORY_NAME",
    "repository_url": "REPOSITORY_URL",
    "author_login": "RELEASE_AUTHOR",
    "is_prerelease": "IS_PRERELEASE",
    "is_draft": "IS_DRAFT",
}
REQUIRED_ENV_FIELDS = ("tag", "html_url", "repository_name", "repository_url", "author_login")


def _validate(data: dict[str, Any], source: str) -> ReleaseMetadata:
    try:
        return ReleaseMetadata.model_validate(data)
    except ValidationError as exc:
        fields = ", ".join(
            ".".join(str(part) for part in err["loc"]) for err in exc.errors()
        )
        raise MissingReleaseDataError(
            f"Incomplete release data from {source}: {fields}"
        ) from exc


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def metadata_from_event(payload: Mapping[str, Any]) -> ReleaseMetadata:
    """Map a GitHub ``release`` event payload onto ReleaseMetadata.

    Args:
        payload: The decoded event JSON

    Returns:
        The release metadata

    Raises:
        MissingReleaseDataError: If the payload has no release or lacks
            required fields
    """
    release = payload.get("release")
    if not release or not isinstance(release, Mapping):
        raise MissingReleaseDataError("No release data found in GitHub context")

    repository = _mapping(payload.get("repository"))
    author = _mapping(release.get("author"))
    return _validate(
        {
            "tag": release.get("tag_name"),
            "name": release.get("name"),
            "body": release.get("body"),
            "html_url": release.get("html_url"),
            "repository_name": repository.get("full_name") or repository.get("name"),
            "repository_url": repository.get("html_url"),
            "author_login": author.get("login"),
            "is_prerelease": bool(release.get("prerelease")),
            "is_draft": bool(release.get("draft")),
        },
        source="GitHub event payload",
    )


def metadata_from_env(env: Mapping[str, str]) -> ReleaseMetadata:
    """Build ReleaseMetadata from RELEASE_* / REPOSITORY_* variables.

    Raises:
        MissingReleaseDataError: Naming every required variable that is unset
    """
    missing = [
        RELEASE_ENV_VARS[field]
        for field in REQUIRED_ENV_FIELDS
        if not env.get(RELEASE_ENV_VARS[field])
    ]
    if missing:
        raise MissingReleaseDataError(
            f"Missing release environment variables: {', '.join(missing)}"
        )

    data: dict[str, Any] = {
        field: env.get(name) for field, name in RELEASE_ENV_VARS.items()
    }
    for flag in ("is_prerelease", "is_draft"):
        data[flag] = (data[flag] or "").strip().lower() == "true"
    return _validate(data, source="environment")


# ---------------------------------------------------------------------------
# Protocol (Interface)
# ---------------------------------------------------------------------------


class ReleaseSourceProtocol(Protocol):
    """Protocol for anything that can supply the release being announced."""

    def load(self) -> ReleaseMetadata:
        """Read and validate the release metadata.

        Raises:
            MissingReleaseDataError: If the metadata is absent or incomplete
        """
        ...


# ---------------------------------------------------------------------------
# Concrete Implementations
# ---------------------------------------------------------------------------


class GitHubEventSource:
    """Reads the release from a GitHub Actions event payload file.

    Usage:
        source = GitHubEventSource(os.environ["GITHUB_EVENT_PATH"])
        metadata = source.load()
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def load(self) -> ReleaseMetadata:
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise MissingReleaseDataError(
                f"GitHub event payload not found: {self._path}"
            ) from exc
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise MissingReleaseDataError(
                f"GitHub event payload is not valid JSON: {self._path}: {exc}"
            ) from exc

        if not isinstance(payload, dict):
            raise MissingReleaseDataError("No release data found in GitHub context")
        return metadata_from_event(payload)


class EnvironmentSource:
    """Reads the release from environment variables.

    Usage:
        metadata = EnvironmentSource().load()
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env = os.environ if env is None else env

    def load(self) -> ReleaseMetadata:
        return metadata_from_env(self._env)


# ---------------------------------------------------------------------------
# Mock Implementation (for testing)
# ---------------------------------------------------------------------------


class MockReleaseSource:
    """Returns predefined metadata, or a sample release if none is given.

    Usage:
        source = MockReleaseSource(ReleaseMetadata(...))
        metadata = source.load()
    """

    def __init__(self, metadata: ReleaseMetadata | None = None) -> None:
        self._metadata = metadata

    def load(self) -> ReleaseMetadata:
        if self._metadata is not None:
            return self._metadata

        return ReleaseMetadata(
            tag="v1.2.3",
            name="Version 1.2.3 - Bug Fixes and Improvements",
            body="This release includes important bug fixes and performance improvements.",
            html_url="https://github.com/your-org/your-sdk/releases/tag/v1.2.3",
            repository_name="your-org/your-sdk",
            repository_url="https://github.com/your-org/your-sdk",
            author_login="sdk-maintainer",
        )


def resolve_release_source(
    event_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> ReleaseSourceProtocol:
    """Pick where to read the release from.

    Order: an explicit event path, then RELEASE_TAG in the environment,
    then the GITHUB_EVENT_PATH file.

    Raises:
        MissingReleaseDataError: If no source is available
    """
    env = os.environ if env is None else env

    if event_path:
        return GitHubEventSource(event_path)
    if env.get(RELEASE_ENV_VARS["tag"]):
        return EnvironmentSource(env)
    if env.get(EVENT_PATH_ENV):
        return GitHubEventSource(env[EVENT_PATH_ENV])

    raise MissingReleaseDataError(
        "No release data available: pass --event-path, set RELEASE_TAG, "
        f"or run on a release event with {EVENT_PATH_ENV} set"
    )
