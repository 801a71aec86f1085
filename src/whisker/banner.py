"""Startup banner — what whisker is watching and where to point the browser.

Detects ``NO_COLOR`` / ``TERM`` for safe fallback (through the shared ANSI
constants of the console reporter).
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from whisker.observability.console import BOLD, COLOR, CYAN, DIM, GREEN, ORANGE, RESET, YELLOW

if TYPE_CHECKING:
    from whisker.config import WhiskerConfig


def _clickable_url(url: str) -> str:
    """Wrap *url* in an OSC 8 hyperlink escape if the terminal supports it."""
    if not COLOR:
        return url
    return f"\033]8;;{url}\033\\{BOLD}{CYAN}{url}{RESET}\033]8;;\033\\"


def banner_lines(
    config: WhiskerConfig,
    rule_count: int,
    *,
    load_ms: float = 0.0,
    warnings: list[str] | None = None,
) -> list[str]:
    """Build the banner as a list of lines (no trailing newline)."""
    from whisker import __version__

    cat = "\u14DA\u1618\u14E2"  # ᓚᘏᗢ
    lines: list[str] = [
        "",
        f"  {ORANGE}{BOLD}{cat}{RESET}  whisker {DIM}v{__version__}{RESET}",
        f"  {DIM}{'─' * 43}{RESET}",
    ]

    rules_label = "rule" if rule_count == 1 else "rules"
    timing = f" {DIM}in {load_ms:.0f}ms{RESET}" if load_ms > 0 else ""
    lines.append(f"  {DIM}├─{RESET} {rule_count} watch {rules_label} compiled{timing}")

    for watch_root in config.watch_roots:
        lines.append(f"  {DIM}├─{RESET} watching: {DIM}{watch_root}{RESET}")

    windows = f"delay {config.reload_delay}ms, debounce {config.reload_debounce}ms"
    lines.append(f"  {DIM}├─{RESET} {windows}")

    if config.proxy_url is not None:
        lines.append(f"  {DIM}└─{RESET} proxying {GREEN}{config.proxy_url}{RESET}")
    else:
        lines.append(f"  {DIM}└─{RESET} {YELLOW}no proxy target{RESET}")

    lines.append("")
    lines.append(f"  {_clickable_url(f'http://{config.host}:{config.port}')}")
    lines.append("")
    lines.append(f"  {DIM}Watching for changes...{RESET}")

    if warnings:
        lines.append("")
        lines.extend(f"  {YELLOW}!{RESET} {w}" for w in warnings)

    lines.append("")
    return lines


def print_banner(
    config: WhiskerConfig,
    rule_count: int,
    *,
    load_ms: float = 0.0,
    warnings: list[str] | None = None,
) -> None:
    """Print the startup banner to stderr.

    Skipped entirely when ``log_level`` is ``silent``.

    Args:
        config: Resolved WhiskerConfig.
        rule_count: Number of compiled watch rules.
        load_ms: Time spent compiling and wiring, in milliseconds.
        warnings: Optional list of warning messages to display.

    """
    if config.log_level == "silent":
        return
    lines = banner_lines(config, rule_count, load_ms=load_ms, warnings=warnings)
    print("\n".join(lines), file=sys.stderr)
