from __future__ import annotations

import shlex
import time


def now_ts() -> float:
    """Return current unix timestamp."""
    return time.time()


def render_command(argv: list[str] | tuple[str, ...]) -> str:
    """Render command tokens as a shell-quoted line for messages."""
    return shlex.join(argv)
