"""Exception types raised by the release notifier."""


class NotifierError(Exception):
    """Base class for all release notifier errors."""


class ConfigurationError(NotifierError, ValueError):
    """Required input is missing or malformed.

    Raised before any network activity takes place.
    """


class MissingReleaseDataError(ConfigurationError):
    """Release metadata is absent or incomplete."""

