"""Dispatch commands — what the browsers are told to do."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import StrEnum

from whisker._types import DispatchMessage


class CommandKind(StrEnum):
    """Kind of browser update."""

    FULL_RELOAD = "full"
    SCOPED_UPDATE = "scoped"


@dataclass(frozen=True, slots=True)
class DispatchCommand:
    """One update instruction for every connected browser.

    Attributes:
        kind: Full page reload or scoped (in-place) update.
        scope: Glob or selector naming what to refresh for scoped updates.
        issued_at: Monotonic clock reading when the command was created.

    """

    kind: CommandKind
    scope: str | None = None
    issued_at: float = field(default_factory=time.monotonic)

    @classmethod
    def full_reload(cls, *, issued_at: float | None = None) -> DispatchCommand:
        if issued_at is None:
            return cls(CommandKind.FULL_RELOAD)
        return cls(CommandKind.FULL_RELOAD, issued_at=issued_at)

    @classmethod
    def scoped(cls, scope: str, *, issued_at: float | None = None) -> DispatchCommand:
        if not scope:
            msg = "scoped updates need a non-empty scope"
            raise ValueError(msg)
        if issued_at is None:
            return cls(CommandKind.SCOPED_UPDATE, scope)
        return cls(CommandKind.SCOPED_UPDATE, scope, issued_at)

    def to_message(self) -> DispatchMessage:
        """Wire form sent to browsers: ``{"kind": ..., "scope"?: ...}``."""
        message: DispatchMessage = {"kind": str(self.kind)}
        if self.kind is CommandKind.SCOPED_UPDATE and self.scope:
            message["scope"] = self.scope
        return message
