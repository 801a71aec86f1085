"""Tests for whisker.server.client — browser client and script injection."""

from __future__ import annotations

from whisker.server.client import (
    CLIENT_SCRIPT,
    CLIENT_SCRIPT_PATH,
    SCRIPT_TAG,
    inject_client_script,
)


class TestInjectClientScript:
    """Script tag placement."""

    def test_before_body_close(self) -> None:
        html = "<html><body><h1>Hi</h1></body></html>"
        result = inject_client_script(html)
        assert result == "<html><body><h1>Hi</h1>" + SCRIPT_TAG + "</body></html>"

    def test_case_insensitive(self) -> None:
        result = inject_client_script("<HTML><BODY>x</BODY></HTML>")
        assert result.index(SCRIPT_TAG) < result.index("</BODY>")

    def test_falls_back_to_html_close(self) -> None:
        result = inject_client_script("<html><p>no body tag</p></html>")
        assert result.endswith(SCRIPT_TAG + "</html>")

    def test_appends_to_fragments(self) -> None:
        assert inject_client_script("<p>fragment</p>") == "<p>fragment</p>" + SCRIPT_TAG

    def test_idempotent(self) -> None:
        once = inject_client_script("<body></body>")
        assert inject_client_script(once) == once
        assert once.count("data-whisker") == 1


class TestClientScript:
    """The served JavaScript."""

    def test_tag_points_at_script_path(self) -> None:
        assert f'src="{CLIENT_SCRIPT_PATH}"' in SCRIPT_TAG

    def test_listens_for_whisker_events(self) -> None:
        assert "/__whisker/events" in CLIENT_SCRIPT
        for event in ("whisker:dispatch", "whisker:notify"):
            assert event in CLIENT_SCRIPT
