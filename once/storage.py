from __future__ import annotations

import logging
import os
from pathlib import Path

from once.config import StateConfig
from once.types import Mode, PeriodMode, WindowMode

logger = logging.getLogger(__name__)

_DIR_MODE = 0o700
_STAMP_MODE = 0o600


def ensure_private_dir(path: Path) -> None:
    """Create ``path`` and any missing parents as owner-only directories."""
    if path.is_dir():
        return
    if path.parent != path:
        ensure_private_dir(path.parent)
    try:
        path.mkdir(mode=_DIR_MODE)
    except FileExistsError:
        if not path.is_dir():
            raise


class StampStore:
    """Marker files recording the last successful run of each identity."""

    def __init__(self, config: StateConfig) -> None:
        self.config = config

    def stamp_path(self, mode: Mode, token: str, bucket: str | None = None) -> Path:
        if isinstance(mode, PeriodMode):
            if bucket is None:
                raise ValueError("period stamps need a bucket")
            return self.config.periods_dir / bucket / f"{token}.stamp"
        return self.config.windows_dir / f"{token}.stamp"

    def exists(self, mode: Mode, token: str, bucket: str | None = None) -> bool:
        return self._stat_mtime(self.stamp_path(mode, token, bucket)) is not None

    def last_modified(self, mode: Mode, token: str) -> float | None:
        if not isinstance(mode, WindowMode):
            raise ValueError("last_modified only applies to window stamps")
        return self._stat_mtime(self.stamp_path(mode, token))

    def mark_now(self, mode: Mode, token: str, bucket: str | None = None) -> Path:
        path = self.stamp_path(mode, token, bucket)
        ensure_private_dir(path.parent)
        path.touch(mode=_STAMP_MODE, exist_ok=True)
        logger.debug("stamped %s", path)
        return path

    def _stat_mtime(self, path: Path) -> float | None:
        # Only "missing" means "never ran"; permission errors and the like propagate.
        try:
            return os.stat(path).st_mtime
        except (FileNotFoundError, NotADirectoryError):
            return None
