from __future__ import annotations

from once.errors import InvalidDuration

_UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
}


def parse_duration(token: str) -> int:
    """Parse ``90m``, ``6h``, ``2d``, ``1w`` or raw seconds into seconds."""
    number, multiplier = token, 1
    if token and token[-1] in _UNIT_SECONDS:
        number, multiplier = token[:-1], _UNIT_SECONDS[token[-1]]

    # str.isdigit() accepts non-ASCII digits like "²"
    if not number or not number.isascii() or not number.isdigit():
        raise InvalidDuration(f"Invalid duration: {token}")
    return int(number) * multiplier
