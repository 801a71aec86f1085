"""Whisker application — file watcher, reactive pipeline and proxy on one Chirp app.

``dev()`` is the primary entry point.  It loads the configuration, compiles
the watch rules (so a bad glob or reaction fails before anything listens),
builds the reactive pipeline and mounts it on a Chirp app next to the proxy
frontend.
"""

from __future__ import annotations

import asyncio
import time
import webbrowser
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from whisker._errors import ConfigError
from whisker.config import WhiskerConfig
from whisker.config_loader import load_config
from whisker.observability import EventLog, PipelineCollector, Reporter

if TYPE_CHECKING:
    from chirp import App

    from whisker.reactive.broadcaster import Broadcaster
    from whisker.reactive.pipeline import ReactivePipeline
    from whisker.reactive.registry import ClientRegistry
    from whisker.reactive.rules import RuleMatcher
    from whisker.server.proxy import ProxyMiddleware


@dataclass(frozen=True, slots=True)
class Coordinator:
    """The assembled pipeline, before it is attached to a server.

    Attributes:
        config: Resolved configuration.
        reporter: Console reporter shared by every stage.
        collector: Structured event sink shared by every stage.
        matcher: Compiled watch rules.
        registry: Connected browsers.
        broadcaster: Fan-out to ``registry``.
        pipeline: Watcher-to-broadcaster coordinator.

    """

    config: WhiskerConfig
    reporter: Reporter
    collector: PipelineCollector
    matcher: RuleMatcher
    registry: ClientRegistry
    broadcaster: Broadcaster
    pipeline: ReactivePipeline


def create_coordinator(config: WhiskerConfig, *, reporter: Reporter | None = None) -> Coordinator:
    """Compile the rules and build every pipeline stage for *config*.

    Raises:
        MatchError: On a malformed watch pattern.
        ConfigError: On an unresolvable reaction reference.

    """
    from whisker.reactive.broadcaster import Broadcaster
    from whisker.reactive.executor import ReactionExecutor
    from whisker.reactive.pipeline import ReactivePipeline
    from whisker.reactive.registry import ClientRegistry
    from whisker.reactive.rules import RuleMatcher, build_rules

    if reporter is None:
        reporter = Reporter(config.log_level, config.log_prefix)

    matcher = RuleMatcher(build_rules(config))
    collector = PipelineCollector(EventLog())
    registry = ClientRegistry(client_timeout=config.client_timeout, collector=collector)
    broadcaster = Broadcaster(registry, collector=collector, reporter=reporter)
    executor = ReactionExecutor(
        matcher,
        collector=collector,
        reporter=reporter,
        notice_sink=broadcaster.push_notice if config.notify else None,
    )
    pipeline = ReactivePipeline(
        matcher,
        executor,
        broadcaster,
        config=config,
        collector=collector,
        reporter=reporter,
    )
    return Coordinator(
        config=config,
        reporter=reporter,
        collector=collector,
        matcher=matcher,
        registry=registry,
        broadcaster=broadcaster,
        pipeline=pipeline,
    )


def _create_chirp_app(config: WhiskerConfig) -> App:
    """Create the Chirp app that hosts whisker's endpoints and the proxy.

    Raises:
        ConfigError: If the server extra is not installed.

    """
    try:
        from chirp import App, AppConfig
    except ImportError as exc:
        msg = (
            "the dev server requires the server extra. "
            "Install with: pip install whisker[server]"
        )
        raise ConfigError(msg) from exc

    return App(config=AppConfig(debug=True, host=config.host, port=config.port))


def _wire_routes(app: App, coordinator: Coordinator) -> None:
    """Register the ``/__whisker/`` endpoints."""
    from whisker.server.routes import WhiskerRouter

    router = WhiskerRouter(app)
    router.register_events_endpoint(
        coordinator.broadcaster, queue_size=coordinator.config.client_queue_size
    )
    router.register_client_script()
    router.register_stats_endpoint(
        coordinator.pipeline, coordinator.registry, coordinator.collector
    )


def _wire_proxy(app: App, config: WhiskerConfig, reporter: Reporter) -> ProxyMiddleware | None:
    """Forward every other request to the proxy target, if one is configured."""
    target = config.proxy_url
    if target is None:
        return None
    try:
        import aiohttp  # noqa: F401
    except ImportError as exc:
        msg = "proxy requires aiohttp. Install with: pip install whisker[server]"
        raise ConfigError(msg) from exc

    from whisker.server.proxy import ProxyMiddleware

    proxy = ProxyMiddleware(target, reporter=reporter)
    app.add_middleware(proxy)
    return proxy


def _start_background_tasks(
    app: App,
    coordinator: Coordinator,
    proxy: ProxyMiddleware | None,
) -> None:
    """Run the watcher and the heartbeat inside the server's event loop.

    Flow:
        on_startup  -> spawn the watcher consumer and the heartbeat loop
        file change -> FileWatcher.changes() -> pipeline.handle()
        on_shutdown -> cancel both tasks, drop pending reactions, close clients

    """
    from whisker.watch.watcher import FileWatcher

    config = coordinator.config
    reporter = coordinator.reporter
    watcher = FileWatcher(config, reporter=reporter)
    tasks: list[asyncio.Task[None]] = []

    async def _heartbeat() -> None:
        while True:
            await asyncio.sleep(config.heartbeat_interval)
            coordinator.broadcaster.heartbeat()

    @app.on_startup
    async def _start() -> None:
        tasks.append(asyncio.create_task(coordinator.pipeline.run(watcher.changes())))
        tasks.append(asyncio.create_task(_heartbeat()))
        if config.open:
            webbrowser.open(f"http://{config.host}:{config.port}/")

    @app.on_shutdown
    async def _stop() -> None:
        watcher.stop()
        for task in tasks:
            if not task.done():
                task.cancel()
        cancelled = coordinator.pipeline.shutdown()
        if cancelled:
            reporter.debug(f"dropped {cancelled} pending reaction(s)")
        coordinator.registry.close_all()
        if proxy is not None:
            await proxy.close()


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def dev(root: str | Path = ".", **kwargs: object) -> None:
    """Start the live-reload server.

    Watches the configured roots, reloads connected browsers when files
    matching a rule change, and proxies everything else to ``proxy``.

    Args:
        root: Project root (where ``whisker.yaml`` lives).
        **kwargs: Override WhiskerConfig fields.

    """
    from whisker.banner import print_banner

    config = load_config(Path(root), **kwargs)
    t0 = time.perf_counter()

    coordinator = create_coordinator(config)
    app = _create_chirp_app(config)
    _wire_routes(app, coordinator)
    proxy = _wire_proxy(app, config, coordinator.reporter)
    _start_background_tasks(app, coordinator, proxy)

    load_ms = (time.perf_counter() - t0) * 1000
    print_banner(config, len(coordinator.matcher), load_ms=load_ms)

    app.run(host=config.host, port=config.port)
