"""Whisker CLI — whisker start / whisker init.

Entry point for the ``whisker`` command-line interface.
"""

from __future__ import annotations

import argparse
import sys

from whisker._errors import WhiskerError


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the whisker CLI."""
    parser = argparse.ArgumentParser(
        prog="whisker",
        description="Live-reload proxy: watch files, reload browsers.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # whisker start
    start_parser = subparsers.add_parser(
        "start",
        help="Watch files and serve the live-reload proxy",
    )
    start_parser.add_argument("root", nargs="?", default=".", help="Project root directory")
    start_parser.add_argument("--proxy", default=None, help="Backend to proxy (host:port or URL)")
    start_parser.add_argument("--host", default=None, help="Bind address")
    start_parser.add_argument("--port", type=int, default=None, help="Bind port")
    start_parser.add_argument(
        "--files",
        action="append",
        default=None,
        metavar="GLOB",
        help="Watch pattern (repeatable); replaces the configured rules",
    )
    start_parser.add_argument(
        "--reload-delay", type=int, default=None, metavar="MS", help="Minimum wait after a change",
    )
    start_parser.add_argument(
        "--reload-debounce", type=int, default=None, metavar="MS", help="Required quiet period",
    )
    start_parser.add_argument(
        "--poll", action="store_true", default=None, help="Poll instead of native events",
    )
    start_parser.add_argument(
        "--open", action="store_true", default=None, help="Open the browser on startup",
    )
    start_parser.add_argument(
        "--notify", action="store_true", default=None, help="Show notices in the browser",
    )
    start_parser.add_argument(
        "--log-level",
        choices=("debug", "info", "warn", "error", "silent"),
        default=None,
        help="Console verbosity",
    )

    # whisker init
    init_parser = subparsers.add_parser(
        "init",
        help="Write a starter whisker.yaml",
    )
    init_parser.add_argument("root", nargs="?", default=".", help="Project root directory")

    return parser


def _get_version() -> str:
    """Get the package version."""
    from whisker import __version__

    return __version__


def _start_overrides(args: argparse.Namespace) -> dict[str, object]:
    """Map ``whisker start`` flags to config overrides (None = not given)."""
    return {
        "proxy": args.proxy,
        "host": args.host,
        "port": args.port,
        "files": args.files,
        "reload_delay": args.reload_delay,
        "reload_debounce": args.reload_debounce,
        "use_polling": args.poll,
        "open": args.open,
        "notify": args.notify,
        "log_level": args.log_level,
    }


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        if args.command == "start":
            from whisker.app import dev

            dev(args.root, **_start_overrides(args))
        elif args.command == "init":
            from pathlib import Path

            from whisker.config_loader import write_default_config

            path = write_default_config(Path(args.root))
            print(f"Created {path}", file=sys.stderr)
    except WhiskerError as exc:
        print(f"whisker: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
