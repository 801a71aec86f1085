"""Reactive layer — change classification and dispatch pipeline.

Connects filesystem changes to browser updates through rule matching,
debouncing, reaction execution and broadcasting.
"""

from whisker.reactive.broadcaster import Broadcaster, Message
from whisker.reactive.commands import CommandKind, DispatchCommand
from whisker.reactive.debounce import DebounceScheduler, PendingReaction
from whisker.reactive.executor import ReactionExecutor
from whisker.reactive.pipeline import ReactivePipeline
from whisker.reactive.reactions import (
    CustomReaction,
    DefaultReaction,
    Reaction,
    ReactionContext,
)
from whisker.reactive.registry import ClientHandle, ClientRegistry, QueueChannel
from whisker.reactive.rules import MatchRule, RuleMatcher, build_rules

__all__ = [
    "Broadcaster",
    "ClientHandle",
    "ClientRegistry",
    "CommandKind",
    "CustomReaction",
    "DebounceScheduler",
    "DefaultReaction",
    "DispatchCommand",
    "MatchRule",
    "Message",
    "PendingReaction",
    "QueueChannel",
    "Reaction",
    "ReactionContext",
    "ReactionExecutor",
    "ReactivePipeline",
    "RuleMatcher",
    "build_rules",
]
