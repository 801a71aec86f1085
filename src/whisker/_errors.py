"""Whisker error hierarchy.

All whisker-specific errors inherit from WhiskerError for easy catching.
Only configuration errors (``ConfigError`` and its ``MatchError`` subclass)
stop the process; the rest are absorbed where they occur.
"""


class WhiskerError(Exception):
    """Base error for all whisker operations."""


class ConfigError(WhiskerError):
    """Invalid or missing configuration."""


class MatchError(ConfigError):
    """A watch rule carries a malformed glob pattern."""


class ReactionError(WhiskerError):
    """A custom reaction raised or returned something other than a command."""


class DeliveryError(WhiskerError):
    """A browser client could not accept a dispatch message."""


class WatcherGapError(WhiskerError):
    """The watcher dropped events and the change stream is incomplete."""
