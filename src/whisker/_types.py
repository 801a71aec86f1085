"""Shared type definitions for whisker."""

from collections.abc import Callable
from typing import Any

# Wire message sent to browsers for one dispatch command
type DispatchMessage = dict[str, str]

# User-supplied reaction handler: ``handler(ctx) -> DispatchCommand``
type ReactionHandler = Callable[..., Any]
