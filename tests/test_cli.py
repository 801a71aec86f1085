"""Tests for whisker._cli — argument parsing and command dispatch."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from whisker._cli import _build_parser, _start_overrides, main


class TestBuildParser:
    """_build_parser — CLI argument parsing."""

    def test_start_default_args(self) -> None:
        args = _build_parser().parse_args(["start"])
        assert args.command == "start"
        assert args.root == "."
        assert args.proxy is None
        assert args.port is None
        assert args.files is None
        assert args.poll is None

    def test_start_all_flags(self) -> None:
        args = _build_parser().parse_args([
            "start", "web/",
            "--proxy", "localhost:8080",
            "--host", "0.0.0.0",
            "--port", "3001",
            "--files", "**/*.css",
            "--files", "templates/**/*.html",
            "--reload-delay", "100",
            "--reload-debounce", "250",
            "--poll",
            "--open",
            "--notify",
            "--log-level", "debug",
        ])
        assert args.root == "web/"
        assert args.proxy == "localhost:8080"
        assert args.port == 3001
        assert args.files == ["**/*.css", "templates/**/*.html"]
        assert args.reload_delay == 100
        assert args.reload_debounce == 250
        assert args.poll is True
        assert args.open is True
        assert args.notify is True
        assert args.log_level == "debug"

    def test_invalid_log_level(self) -> None:
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["start", "--log-level", "loud"])

    def test_init_default_root(self) -> None:
        args = _build_parser().parse_args(["init"])
        assert args.command == "init"
        assert args.root == "."

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            _build_parser().parse_args(["--version"])
        assert exc_info.value.code == 0
        assert "whisker 0.1.0" in capsys.readouterr().out


class TestStartOverrides:
    """Flags map to config fields; unset flags stay None."""

    def test_unset_flags_are_none(self) -> None:
        overrides = _start_overrides(_build_parser().parse_args(["start"]))
        assert all(value is None for value in overrides.values())

    def test_field_names(self) -> None:
        overrides = _start_overrides(_build_parser().parse_args(["start", "--poll", "--port", "1"]))
        assert overrides["use_polling"] is True
        assert overrides["port"] == 1


class TestMain:
    """Command dispatch."""

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0
        assert "start" in capsys.readouterr().out

    def test_start_calls_dev(self) -> None:
        with patch("whisker.app.dev") as dev:
            main(["start", "site", "--proxy", "localhost:8080"])
        dev.assert_called_once()
        args, kwargs = dev.call_args
        assert args == ("site",)
        assert kwargs["proxy"] == "localhost:8080"

    def test_init_writes_config(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        main(["init", str(tmp_path)])
        assert (tmp_path / "whisker.yaml").is_file()
        assert "Created" in capsys.readouterr().err

    def test_config_error_exits_1(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        (tmp_path / "whisker.yaml").write_text("port: 1\n")
        with pytest.raises(SystemExit) as exc_info:
            main(["init", str(tmp_path)])
        assert exc_info.value.code == 1
        assert "already exists" in capsys.readouterr().err

    def test_malformed_glob_exits_1(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["start", str(tmp_path), "--files", "{a,b"])
        assert exc_info.value.code == 1
        assert "unclosed" in capsys.readouterr().err
