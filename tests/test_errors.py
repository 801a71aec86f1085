"""Tests for whisker._errors — error hierarchy."""

from __future__ import annotations

import pytest

from whisker._errors import (
    ConfigError,
    DeliveryError,
    MatchError,
    ReactionError,
    WatcherGapError,
    WhiskerError,
)


class TestErrorHierarchy:
    """Every whisker error is catchable as WhiskerError."""

    @pytest.mark.parametrize(
        "cls",
        [ConfigError, MatchError, ReactionError, DeliveryError, WatcherGapError],
    )
    def test_inherits_from_whisker_error(self, cls: type[Exception]) -> None:
        assert issubclass(cls, WhiskerError)

    def test_match_error_is_a_config_error(self) -> None:
        """Malformed globs stop startup like any other config problem."""
        with pytest.raises(ConfigError):
            raise MatchError("bad glob")

    def test_runtime_errors_are_not_config_errors(self) -> None:
        for cls in (ReactionError, DeliveryError, WatcherGapError):
            assert not issubclass(cls, ConfigError)

    def test_message_preserved(self) -> None:
        err = DeliveryError("connection closed")
        assert str(err) == "connection closed"
