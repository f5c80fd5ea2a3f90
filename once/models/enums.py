from __future__ import annotations

from enum import Enum


class Granularity(str, Enum):
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class Decision(str, Enum):
    RUN = "run"
    SKIP = "skip"


class Outcome(str, Enum):
    EXECUTED = "executed"
    WOULD_RUN = "would_run"
    SKIPPED = "skipped"
    FAILED = "failed"
    BUSY = "busy"

    @property
    def exit_code(self) -> int:
        return _EXIT_CODES[self]


_EXIT_CODES = {
    Outcome.EXECUTED: 0,
    Outcome.WOULD_RUN: 0,
    Outcome.SKIPPED: 3,
    Outcome.FAILED: 1,
    Outcome.BUSY: 4,
}
