"""Shared fixtures for the release notifier tests."""

from __future__ import annotations

import pytest
import structlog

from release_notifier.schemas import NotificationConfig, ReleaseMetadata


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo setup_logging() so no test logs into another test's captured stream."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def release() -> ReleaseMetadata:
    """A published, non-prerelease release."""
    return ReleaseMetadata(
        tag="v1.2.3",
        name="Version 1.2.3 - Bug Fixes and Improvements",
        body="- Fixed memory leak in authentication module\n- Updated dependencies",
        html_url="https://github.com/your-org/your-sdk/releases/tag/v1.2.3",
        repository_name="your-org/your-sdk",
        repository_url="https://github.com/your-org/your-sdk",
        author_login="sdk-maintainer",
    )


@pytest.fixture
def draft_release(release: ReleaseMetadata) -> ReleaseMetadata:
    return release.model_copy(update={"is_draft": True})


@pytest.fixture
def config() -> NotificationConfig:
    """Config with no optional features enabled."""
    return NotificationConfig()


@pytest.fixture
def release_event() -> dict:
    """A trimmed GitHub ``release`` event payload."""
    return {
        "action": "published",
        "release": {
            "tag_name": "v2.0.0",
            "name": "2.0.0",
            "body": "Major release",
            "html_url": "https://github.com/myorg/api/releases/tag/v2.0.0",
            "prerelease": False,
            "draft": False,
            "author": {"login": "octocat"},
        },
        "repository": {
            "name": "api",
            "full_name": "myorg/api",
            "html_url": "https://github.com/myorg/api",
        },
    }
