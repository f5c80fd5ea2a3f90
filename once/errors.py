from __future__ import annotations


class OnceError(Exception):
    """Base error; ``exit_code`` is what the CLI exits with."""

    exit_code = 1


class UsageError(OnceError):
    """Bad or conflicting flags, or no command given."""


class CommandNotFound(OnceError):
    """The executable could not be resolved on the search path."""


class InvalidDuration(OnceError):
    """A window duration token could not be parsed."""


class UnsupportedClock(OnceError):
    """The clock reading cannot be turned into a calendar bucket."""


class LockBusy(OnceError):
    """Another live invocation holds the lock for this identity."""

    exit_code = 4
