"""Whisker: a live-reload proxy for server-rendered applications.

Sits in front of a running backend, watches the project's files, and tells
every connected browser what to do when something changes: reload the page,
or swap a stylesheet in place.

Quick start::

    import whisker

    whisker.dev(".", proxy="localhost:8080", files=["templates/**/*.html"])

The pipeline, stage by stage::

    FileWatcher       watchfiles -> ChangeRecord stream
    RuleMatcher       which watch rules a change belongs to
    DebounceScheduler one reaction per rule per burst
    ReactionExecutor  reaction -> DispatchCommand
    Broadcaster       command -> every registered browser

"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from whisker.config import WhiskerConfig

__version__ = "0.1.0-dev"
__all__ = [
    "WhiskerConfig",
    "__version__",
    "dev",
    "load_config",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import whisker`` fast; the server stack loads on first use.
    """
    if name == "WhiskerConfig":
        from whisker.config import WhiskerConfig

        return WhiskerConfig

    if name == "load_config":
        from whisker.config_loader import load_config

        return load_config

    if name == "dev":
        from whisker.app import dev

        return dev

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
