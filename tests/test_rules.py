"""Tests for whisker.reactive.rules — rule compilation and matching."""

from __future__ import annotations

from pathlib import Path

import pytest

from whisker._errors import ConfigError, MatchError
from whisker.config import FileRule
from whisker.reactive.reactions import CustomReaction, DefaultReaction
from whisker.reactive.rules import MatchRule, RuleMatcher, build_rules
from whisker.watch.watcher import ChangeKind

from .conftest import make_config, make_matcher, record


class TestMatchRule:
    """Single-rule matching."""

    def test_create_compiles_patterns(self, tmp_path: Path) -> None:
        rule = MatchRule.create(0, ["*.css", "*.scss"], tmp_path)
        assert rule.patterns == ("*.css", "*.scss")
        assert len(rule.globs) == 2
        assert rule.reaction == DefaultReaction()

    def test_no_patterns(self, tmp_path: Path) -> None:
        with pytest.raises(MatchError, match="no patterns"):
            MatchRule.create(0, [], tmp_path)

    def test_malformed_pattern(self, tmp_path: Path) -> None:
        with pytest.raises(MatchError):
            MatchRule.create(0, ["[oops"], tmp_path)

    def test_frozen(self, tmp_path: Path) -> None:
        rule = MatchRule.create(0, ["*.css"], tmp_path)
        with pytest.raises(AttributeError):
            rule.id = 3  # type: ignore[misc]

    def test_matches_relative_to_scope(self, tmp_path: Path) -> None:
        rule = MatchRule.create(0, ["*.css"], tmp_path / "public" / "css")
        assert rule.matches(record(tmp_path, "public/css/styles.css"))
        assert not rule.matches(record(tmp_path, "styles.css"))

    def test_outside_scope_never_matches(self, tmp_path: Path) -> None:
        rule = MatchRule.create(0, ["**"], tmp_path / "web")
        assert not rule.matches(record(tmp_path, "other/index.html"))

    def test_scope_root_itself_never_matches(self, tmp_path: Path) -> None:
        rule = MatchRule.create(0, ["**"], tmp_path)
        assert rule.relative_path(record(tmp_path, ".")) is None

    def test_directory_record_needs_directory_pattern(self, tmp_path: Path) -> None:
        files_only = MatchRule.create(0, ["assets/**"], tmp_path)
        dirs = MatchRule.create(1, ["assets/*/"], tmp_path)
        created_dir = record(tmp_path, "assets/img", ChangeKind.DIR_CREATED)

        assert not files_only.matches(created_dir)
        assert dirs.matches(created_dir)

    def test_file_record_ignores_directory_pattern(self, tmp_path: Path) -> None:
        rule = MatchRule.create(0, ["assets/*/"], tmp_path)
        assert not rule.matches(record(tmp_path, "assets/logo", ChangeKind.MODIFIED))

    def test_removed_file_still_matches(self, tmp_path: Path) -> None:
        rule = MatchRule.create(0, ["**/*.html"], tmp_path)
        assert rule.matches(record(tmp_path, "templates/old.html", ChangeKind.REMOVED))


class TestRuleMatcher:
    """Ordered, multi-rule matching."""

    def test_no_match_returns_empty(self, tmp_path: Path) -> None:
        matcher = make_matcher(tmp_path, "**/*.css")
        assert matcher.match(record(tmp_path, "README.md")) == ()

    def test_single_match(self, tmp_path: Path) -> None:
        matcher = make_matcher(tmp_path, "**/*.css", "**/*.html")
        matched = matcher.match(record(tmp_path, "templates/index.html"))
        assert [rule.id for rule in matched] == [1]

    def test_overlapping_rules_in_declaration_order(self, tmp_path: Path) -> None:
        """Every matching rule is returned, earliest-declared first."""
        matcher = make_matcher(tmp_path, "public/**", "**/*.js", "**/*.css")
        matched = matcher.match(record(tmp_path, "public/js/app.js"))
        assert [rule.id for rule in matched] == [0, 1]

    def test_rule_lookup(self, tmp_path: Path) -> None:
        matcher = make_matcher(tmp_path, "*.css", "*.js")
        assert matcher.rule(1).patterns == ("*.js",)
        with pytest.raises(KeyError):
            matcher.rule(7)

    def test_duplicate_ids_rejected(self, tmp_path: Path) -> None:
        rule = MatchRule.create(0, ["*.css"], tmp_path)
        with pytest.raises(MatchError, match="unique"):
            RuleMatcher([rule, rule])

    def test_len_and_rules(self, tmp_path: Path) -> None:
        matcher = make_matcher(tmp_path, "*.css", "*.js", "*.html")
        assert len(matcher) == 3
        assert tuple(rule.id for rule in matcher.rules) == (0, 1, 2)

    def test_empty_matcher(self, tmp_path: Path) -> None:
        matcher = RuleMatcher([])
        assert len(matcher) == 0
        assert matcher.match(record(tmp_path, "a.css")) == ()


class TestBuildRules:
    """Rules compiled from configuration."""

    def test_ids_follow_declaration_order(self, tmp_project: Path) -> None:
        config = make_config(tmp_project, "**/*.css", "**/*.html")
        rules = build_rules(config)
        assert [(rule.id, rule.patterns) for rule in rules] == [
            (0, ("**/*.css",)),
            (1, ("**/*.html",)),
        ]

    def test_scope_and_reaction(self, tmp_project: Path) -> None:
        config = make_config(
            tmp_project,
            FileRule(match=("*.css",), reaction="inject:*.css", scope_root="public/css"),
        )
        (rule,) = build_rules(config)
        assert rule.scope_root == tmp_project / "public" / "css"
        assert isinstance(rule.reaction, CustomReaction)
        assert rule.reaction.name == "inject:*.css"

    def test_malformed_glob_fails_startup(self, tmp_project: Path) -> None:
        config = make_config(tmp_project, "{a,b")
        with pytest.raises(MatchError):
            build_rules(config)

    def test_unknown_reaction_fails_startup(self, tmp_project: Path) -> None:
        config = make_config(tmp_project, FileRule(match=("*.css",), reaction="nope"))
        with pytest.raises(ConfigError, match="unknown reaction"):
            build_rules(config)
