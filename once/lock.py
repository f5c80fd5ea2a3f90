from __future__ import annotations

import fcntl
import logging
import os
import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from types import FrameType, TracebackType

from once.config import StateConfig
from once.errors import LockBusy
from once.storage import ensure_private_dir

logger = logging.getLogger(__name__)

_LOCK_MODE = 0o600
_TERMINATING_SIGNALS = (signal.SIGTERM, signal.SIGHUP)


class Terminated(SystemExit):
    """Raised in place of the default action for SIGTERM/SIGHUP."""

    def __init__(self, signum: int) -> None:
        super().__init__(128 + signum)
        self.signum = signum


class HeldLock:
    """An acquired identity lock; release is idempotent."""

    def __init__(self, path: Path, fd: int) -> None:
        self.path = path
        self._fd: int | None = fd

    @property
    def held(self) -> bool:
        return self._fd is not None

    def release(self) -> None:
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            # Unlink while still holding the flock so a waiter that opened the
            # old inode notices the mismatch and retries.
            self.path.unlink(missing_ok=True)
        finally:
            os.close(fd)
        logger.debug("released lock %s", self.path)

    def __enter__(self) -> HeldLock:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


class LockManager:
    """Per-identity mutual exclusion using non-blocking ``flock``."""

    def __init__(self, config: StateConfig) -> None:
        self.config = config

    def lock_path(self, token: str) -> Path:
        return self.config.locks_dir / f"{token}.lock"

    def acquire(self, token: str) -> HeldLock:
        """Take the lock for ``token`` or raise ``LockBusy`` without waiting."""
        path = self.lock_path(token)
        ensure_private_dir(path.parent)

        while True:
            fd = os.open(path, os.O_RDWR | os.O_CREAT, _LOCK_MODE)
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                os.close(fd)
                logger.debug("lock busy %s (holder %s)", path, _read_holder(path))
                raise LockBusy("Another instance is already running for this key.") from None
            except BaseException:
                os.close(fd)
                raise

            try:
                current = os.stat(path)
            except FileNotFoundError:
                os.close(fd)
                continue
            except BaseException:
                os.close(fd)
                raise
            if not os.path.samestat(os.fstat(fd), current):
                os.close(fd)
                continue
            break

        try:
            os.ftruncate(fd, 0)
            os.write(fd, f"{os.getpid()}\n".encode("ascii"))
        except BaseException:
            HeldLock(path, fd).release()
            raise
        logger.debug("acquired lock %s", path)
        return HeldLock(path, fd)


def _read_holder(path: Path) -> str:
    try:
        return path.read_text(encoding="ascii").strip() or "unknown"
    except (OSError, UnicodeDecodeError):
        return "unknown"


@contextmanager
def terminate_on_signals() -> Iterator[None]:
    """Turn SIGTERM/SIGHUP into ``Terminated`` so ``finally`` blocks run."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _raise(signum: int, frame: FrameType | None) -> None:
        raise Terminated(signum)

    previous = {signum: signal.signal(signum, _raise) for signum in _TERMINATING_SIGNALS}
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)
