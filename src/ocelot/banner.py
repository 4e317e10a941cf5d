"""Startup banner — mode-aware status output.

Prints a short banner with node/page counts and timing.  Detects
``NO_COLOR`` / ``TERM`` for safe fallback.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ocelot._types import OcelotMode
    from ocelot.config import OcelotConfig


# ---------------------------------------------------------------------------
# ANSI helpers — respect NO_COLOR (https://no-color.org)
# ---------------------------------------------------------------------------

def _supports_color() -> bool:
    """Return True if the terminal supports ANSI colors."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("TERM") == "dumb":
        return False
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


_COLOR = _supports_color()

_RESET = "\033[0m" if _COLOR else ""
_BOLD = "\033[1m" if _COLOR else ""
_DIM = "\033[2m" if _COLOR else ""
_GREEN = "\033[32m" if _COLOR else ""
_YELLOW = "\033[33m" if _COLOR else ""
_MAGENTA = "\033[35m" if _COLOR else ""

_MODE_STYLES: dict[str, str] = {
    "develop": _GREEN,
    "build": _YELLOW,
}


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def print_banner(
    config: OcelotConfig,
    *,
    node_count: int,
    page_count: int,
    mode: OcelotMode,
    load_ms: float = 0.0,
) -> None:
    """Print the Ocelot startup banner to stderr.

    Args:
        config: Resolved OcelotConfig.
        node_count: Nodes in the store after bootstrap.
        page_count: Pages registered.
        mode: ``"develop"`` or ``"build"``.
        load_ms: Time spent bootstrapping in milliseconds.

    """
    from ocelot import __version__

    color = _MODE_STYLES.get(mode, _DIM)
    timing = f" {_DIM}in {load_ms:.0f}ms{_RESET}" if load_ms > 0 else ""
    lines = [
        "",
        f"  {_MAGENTA}{_BOLD}ocelot{_RESET} {_DIM}v{__version__}{_RESET}  {color}[{mode}]{_RESET}",
        f"  {_DIM}{'─' * 43}{_RESET}",
        f"  {_DIM}├─{_RESET} {_plural(node_count, 'node')}, {_plural(page_count, 'page')}{timing}",
        f"  {_DIM}├─{_RESET} cache: {_DIM}{config.snapshot_path}{_RESET}",
        f"  {_DIM}└─{_RESET} output: {_DIM}{config.output_path}{_RESET}",
    ]
    if mode == "develop":
        lines.append("")
        lines.append(f"  {_DIM}Watching {config.content_path} for changes...{_RESET}")
    lines.append("")

    print("\n".join(lines), file=sys.stderr)
