from __future__ import annotations

import errno
import logging
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class Executor(Protocol):
    def __call__(
        self,
        argv: Sequence[str],
        executable: str | None = None,
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> int: ...


def run_command(
    argv: Sequence[str],
    executable: str | None = None,
    cwd: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> int:
    """Run a command with inherited stdio and return its exit status.

    ``argv[0]`` is passed to the child as typed while ``executable`` picks the
    program actually started. A launch failure is reported with the shell's
    codes (127 not found, 126 not executable) instead of raising.
    """
    try:
        completed = subprocess.run(
            list(argv),
            executable=executable,
            cwd=cwd,
            env=None if env is None else dict(env),
            check=False,
        )
    except OSError as exc:
        logger.error("cannot execute %s: %s", executable or argv[0], exc)
        return 127 if exc.errno == errno.ENOENT else 126

    logger.debug("child exited with status %d", completed.returncode)
    return completed.returncode
