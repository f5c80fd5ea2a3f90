from __future__ import annotations

import pytest

from once.duration import parse_duration
from once.errors import InvalidDuration


@pytest.mark.parametrize(
    ("token", "seconds"),
    [
        ("0", 0),
        ("45", 45),
        ("45s", 45),
        ("90m", 5400),
        ("6h", 21600),
        ("2d", 172800),
        ("1w", 604800),
    ],
)
def test_parse_duration_units(token: str, seconds: int) -> None:
    assert parse_duration(token) == seconds


@pytest.mark.parametrize("token", ["", "h", "-5m", "1.5h", "abc", "10x", " 5", "5 h", "²h"])
def test_parse_duration_rejects_invalid_tokens(token: str) -> None:
    with pytest.raises(InvalidDuration, match="Invalid duration"):
        parse_duration(token)
