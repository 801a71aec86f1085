"""Tests for whisker.server.routes — /__whisker/ endpoints."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from whisker.app import create_coordinator
from whisker.server.client import CLIENT_SCRIPT_PATH
from whisker.server.routes import EVENTS_ENDPOINT, STATS_ENDPOINT, WhiskerRouter, stats_payload

from .conftest import make_config


class _FakeApp:
    """Records ``app.route`` registrations."""

    def __init__(self) -> None:
        self.routes: dict[str, tuple[str, Callable[..., Any]]] = {}

    def route(self, path: str, *, name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        def decorator(handler: Callable[..., Any]) -> Callable[..., Any]:
            self.routes[path] = (name, handler)
            return handler

        return decorator


class TestEndpoints:
    """Endpoint paths live under the internal prefix."""

    def test_paths(self) -> None:
        assert EVENTS_ENDPOINT == "/__whisker/events"
        assert STATS_ENDPOINT == "/__whisker/stats"
        assert CLIENT_SCRIPT_PATH.startswith("/__whisker/")


class TestStatsPayload:
    """Snapshot served by the stats endpoint."""

    def test_fresh_coordinator(self, tmp_project: Path) -> None:
        coordinator = create_coordinator(
            make_config(tmp_project, "**/*.css", "**/*.html", log_level="silent")
        )
        payload = stats_payload(coordinator.registry, coordinator.pipeline, coordinator.collector)

        assert payload["clients"] == 0
        assert payload["rules"] == 2
        assert payload["pending"] == []
        assert payload["event_log"]["total"] == 0


class TestWhiskerRouter:
    """Route registration on the app."""

    def test_registers_all_routes(self, tmp_project: Path) -> None:
        pytest.importorskip("chirp")
        coordinator = create_coordinator(make_config(tmp_project, "*.css", log_level="silent"))
        app = _FakeApp()
        router = WhiskerRouter(app)  # type: ignore[arg-type]

        router.register_events_endpoint(coordinator.broadcaster)
        router.register_client_script()
        router.register_stats_endpoint(
            coordinator.pipeline, coordinator.registry, coordinator.collector
        )

        assert {path: name for path, (name, _) in app.routes.items()} == {
            EVENTS_ENDPOINT: "whisker:events",
            CLIENT_SCRIPT_PATH: "whisker:client",
            STATS_ENDPOINT: "whisker:stats",
        }

    @pytest.mark.asyncio
    async def test_events_handler_registers_client(self, tmp_project: Path) -> None:
        pytest.importorskip("chirp")
        coordinator = create_coordinator(make_config(tmp_project, "*.css", log_level="silent"))
        app = _FakeApp()
        WhiskerRouter(app).register_events_endpoint(coordinator.broadcaster)  # type: ignore[arg-type]

        _, handler = app.routes[EVENTS_ENDPOINT]
        await handler(object())

        assert coordinator.registry.client_count == 1

    @pytest.mark.asyncio
    async def test_client_script_handler(self) -> None:
        pytest.importorskip("chirp")
        app = _FakeApp()
        WhiskerRouter(app).register_client_script()  # type: ignore[arg-type]

        _, handler = app.routes[CLIENT_SCRIPT_PATH]
        response = await handler(object())

        assert response.status == 200
        assert "javascript" in response.content_type
