"""Reactions — what a watch rule does when its debounce window closes.

A rule carries one of two reaction variants:

- ``DefaultReaction``: reload every connected page.
- ``CustomReaction``: call a handler that decides the command, e.g. inject a
  changed stylesheet without reloading the page.

Handlers receive a ``ReactionContext``::

    def styles(ctx):
        ctx.notify(f"{len(ctx.paths)} stylesheet(s) changed")
        return ctx.reload("*.css")

Reaction references in configuration are resolved once at startup by
``resolve_reaction()``.
"""

from __future__ import annotations

import functools
import importlib
import importlib.util
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from whisker._errors import ConfigError
from whisker.reactive.commands import DispatchCommand

if TYPE_CHECKING:
    from pathlib import Path

    from whisker._types import ReactionHandler
    from whisker.reactive.rules import MatchRule


@dataclass(frozen=True, slots=True)
class DefaultReaction:
    """Full page reload."""

    name: str = "reload"


@dataclass(frozen=True, slots=True)
class CustomReaction:
    """A user (or built-in) handler returning a ``DispatchCommand``.

    Attributes:
        handler: Callable invoked as ``handler(ctx)``.
        name: Reference it was configured with, for diagnostics.

    """

    handler: ReactionHandler = field(compare=False)
    name: str = "custom"


type Reaction = DefaultReaction | CustomReaction


@dataclass(slots=True)
class ReactionContext:
    """What a custom reaction can see and do.

    Attributes:
        rule: The rule that fired.
        paths: Paths collected during the debounce window, sorted.

    """

    rule: MatchRule
    paths: tuple[str, ...]
    _clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    _notices: list[str] = field(default_factory=list, repr=False)

    def reload(self, scope: str | None = None) -> DispatchCommand:
        """Build a full reload, or a scoped update when *scope* is given."""
        now = self._clock()
        if scope is None:
            return DispatchCommand.full_reload(issued_at=now)
        return DispatchCommand.scoped(scope, issued_at=now)

    def notify(self, message: str) -> None:
        """Queue a diagnostic notice, delivered after the command is built."""
        self._notices.append(str(message))

    @property
    def notices(self) -> tuple[str, ...]:
        return tuple(self._notices)


def inject(scope: str, ctx: ReactionContext) -> DispatchCommand:
    """Built-in handler behind ``inject:<scope>`` references."""
    return ctx.reload(scope)


def resolve_reaction(reference: str | None, root: Path) -> Reaction:
    """Turn a configured reaction reference into a ``Reaction``.

    Accepted forms:
        ``None`` / ``"reload"``   -> ``DefaultReaction``
        ``"inject:<scope>"``      -> scoped update for ``<scope>``
        ``"module:attr"``         -> handler ``attr`` from ``module``; the module
                                     is looked up as ``<root>/module.py`` first,
                                     then on the import path.

    Raises:
        ConfigError: If the reference cannot be resolved to a callable.

    """
    if reference is None or reference == "reload":
        return DefaultReaction()

    if reference.startswith("inject:"):
        scope = reference.removeprefix("inject:").strip()
        if not scope:
            msg = f"reaction {reference!r}: inject needs a scope, e.g. inject:*.css"
            raise ConfigError(msg)
        return CustomReaction(handler=functools.partial(inject, scope), name=reference)

    module_part, sep, attr = reference.partition(":")
    if not sep or not module_part or not attr:
        msg = (
            f"unknown reaction {reference!r} "
            "(expected 'reload', 'inject:<scope>' or 'module:attr')"
        )
        raise ConfigError(msg)

    module = _load_module(module_part, root, reference)
    handler = getattr(module, attr, None)
    if not callable(handler):
        msg = f"reaction {reference!r}: {attr} is not callable in {module.__name__}"
        raise ConfigError(msg)
    return CustomReaction(handler=handler, name=reference)


def _load_module(module_part: str, root: Path, reference: str) -> object:
    py_file = root.joinpath(*module_part.split(".")).with_suffix(".py")
    if py_file.is_file():
        module_name = f"whisker_reaction_{module_part.replace('.', '_')}"
        spec = importlib.util.spec_from_file_location(module_name, py_file)
        if spec is None or spec.loader is None:
            msg = f"reaction {reference!r}: failed to load {py_file}"
            raise ConfigError(msg)
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as exc:
            del sys.modules[module_name]
            msg = f"reaction {reference!r}: error importing {py_file}: {exc}"
            raise ConfigError(msg) from exc
        return module

    try:
        return importlib.import_module(module_part)
    except ImportError as exc:
        msg = f"reaction {reference!r}: module {module_part!r} not found"
        raise ConfigError(msg) from exc
