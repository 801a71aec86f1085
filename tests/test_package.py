"""Tests for whisker package exports and metadata."""

import whisker


class TestPackageMetadata:
    """Package-level exports and metadata."""

    def test_version_string(self) -> None:
        assert isinstance(whisker.__version__, str)
        assert "0.1.0" in whisker.__version__

    def test_all_exports_resolvable(self) -> None:
        for name in whisker.__all__:
            getattr(whisker, name)

    def test_lazy_config_class(self) -> None:
        from whisker.config import WhiskerConfig

        assert whisker.WhiskerConfig is WhiskerConfig

    def test_invalid_attribute_raises(self) -> None:
        import pytest

        with pytest.raises(AttributeError, match="no attribute"):
            whisker.nonexistent_thing  # type: ignore[attr-defined]  # noqa: B018
