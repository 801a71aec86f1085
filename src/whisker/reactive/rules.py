"""Rule matcher — decides which watch rules a change record belongs to.

Rules are built once from configuration and never change afterwards, so
matching needs no locking.  Declaration order is preserved everywhere: the
matcher returns every matching rule, earliest-declared first, and each of
them goes through its own debounce window.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from whisker._errors import MatchError
from whisker.glob import GlobPattern, compile_glob
from whisker.reactive.reactions import DefaultReaction, Reaction, resolve_reaction

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from whisker.config import WhiskerConfig
    from whisker.watch.watcher import ChangeRecord


@dataclass(frozen=True, slots=True)
class MatchRule:
    """A path-pattern-to-reaction binding.

    Attributes:
        id: Declaration ordinal (0-based).
        patterns: Glob patterns as configured.
        scope_root: Absolute directory the patterns are relative to.
        reaction: What happens when the rule fires.

    """

    id: int
    patterns: tuple[str, ...]
    scope_root: Path
    reaction: Reaction = field(default_factory=DefaultReaction)
    globs: tuple[GlobPattern, ...] = field(default=(), compare=False, repr=False)

    @classmethod
    def create(
        cls,
        rule_id: int,
        patterns: Sequence[str],
        scope_root: Path,
        reaction: Reaction | None = None,
    ) -> MatchRule:
        """Compile *patterns* into a rule.

        Raises:
            MatchError: If the rule has no patterns or any pattern is malformed.

        """
        if not patterns:
            msg = f"rule {rule_id} has no patterns"
            raise MatchError(msg)
        globs = tuple(compile_glob(pattern) for pattern in patterns)
        return cls(
            id=rule_id,
            patterns=tuple(patterns),
            scope_root=scope_root,
            reaction=reaction if reaction is not None else DefaultReaction(),
            globs=globs,
        )

    def relative_path(self, record: ChangeRecord) -> str | None:
        """The record's path relative to the scope root, or None if outside."""
        try:
            relative = record.path.relative_to(self.scope_root)
        except ValueError:
            return None
        posix = relative.as_posix()
        return None if posix == "." else posix

    def matches(self, record: ChangeRecord) -> bool:
        """Whether any pattern covers *record*.

        Directory records only match directory patterns (trailing ``/``) and
        file records only match file patterns.
        """
        relative = self.relative_path(record)
        if relative is None:
            return False
        directory = record.kind.is_directory
        return any(
            glob.directory == directory and glob.matches(relative) for glob in self.globs
        )


def build_rules(config: WhiskerConfig) -> tuple[MatchRule, ...]:
    """Compile the configured ``files`` list into match rules.

    Raises:
        MatchError: On a malformed glob.
        ConfigError: On an unresolvable reaction reference.

    """
    return tuple(
        MatchRule.create(
            rule_id,
            entry.match,
            config.scope_path(entry),
            resolve_reaction(entry.reaction, config.root),
        )
        for rule_id, entry in enumerate(config.files)
    )


class RuleMatcher:
    """Matches change records against an ordered, immutable rule list.

    Args:
        rules: Rules in declaration order.  Their ids must be unique.

    """

    __slots__ = ("_by_id", "_rules")

    def __init__(self, rules: Sequence[MatchRule]) -> None:
        self._rules = tuple(rules)
        self._by_id = {rule.id: rule for rule in self._rules}
        if len(self._by_id) != len(self._rules):
            raise MatchError("rule ids must be unique")

    @property
    def rules(self) -> tuple[MatchRule, ...]:
        return self._rules

    def rule(self, rule_id: int) -> MatchRule:
        """Look up a rule by id.  Raises ``KeyError`` for unknown ids."""
        return self._by_id[rule_id]

    def match(self, record: ChangeRecord) -> tuple[MatchRule, ...]:
        """Every rule matching *record*, in declaration order.

        Returns an empty tuple when nothing matches.
        """
        return tuple(rule for rule in self._rules if rule.matches(record))

    def __len__(self) -> int:
        return len(self._rules)
