"""Shared test fixtures for whisker."""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from whisker.config import FileRule, WhiskerConfig
from whisker.observability import EventLog, PipelineCollector, Reporter
from whisker.reactive.reactions import CustomReaction
from whisker.reactive.rules import MatchRule, RuleMatcher
from whisker.watch.watcher import ChangeKind, ChangeRecord


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def collector() -> PipelineCollector:
    return PipelineCollector(EventLog())


@pytest.fixture
def output() -> io.StringIO:
    """Stream capturing Reporter output."""
    return io.StringIO()


@pytest.fixture
def reporter(output: io.StringIO) -> Reporter:
    return Reporter("debug", "test", stream=output)


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """A small server-rendered project layout.

    Returns the project root with templates/, public/css/ and public/js/.
    """
    (tmp_path / "templates").mkdir()
    (tmp_path / "templates" / "index.html").write_text("<html><body>hi</body></html>\n")
    css = tmp_path / "public" / "css"
    css.mkdir(parents=True)
    (css / "styles.css").write_text("body { margin: 0; }\n")
    js = tmp_path / "public" / "js"
    js.mkdir()
    (js / "app.js").write_text("console.log('hi');\n")
    return tmp_path


def make_config(root: Path, *rules: FileRule | str, **kwargs: object) -> WhiskerConfig:
    """Build a WhiskerConfig with the given ``files`` rules."""
    files = tuple(FileRule(match=(r,)) if isinstance(r, str) else r for r in rules)
    return WhiskerConfig(root=root, files=files, **kwargs)  # type: ignore[arg-type]


def make_rule(
    rule_id: int,
    *patterns: str,
    root: Path,
    reaction: CustomReaction | None = None,
) -> MatchRule:
    return MatchRule.create(rule_id, patterns, root, reaction)


def make_matcher(root: Path, *rule_patterns: tuple[str, ...] | str) -> RuleMatcher:
    rules = []
    for rule_id, patterns in enumerate(rule_patterns):
        if isinstance(patterns, str):
            patterns = (patterns,)
        rules.append(MatchRule.create(rule_id, patterns, root))
    return RuleMatcher(rules)


def record(
    root: Path,
    relative: str,
    kind: ChangeKind = ChangeKind.MODIFIED,
    observed_at: float = 0.0,
) -> ChangeRecord:
    return ChangeRecord(path=root / relative, kind=kind, observed_at=observed_at)
