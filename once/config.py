from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from once.duration import parse_duration
from once.errors import UsageError
from once.models.enums import Granularity
from once.types import Mode, PeriodMode, WindowMode


class StateConfig(BaseModel):
    """Location of all persisted state for one invocation."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    state_dir: Path

    @property
    def locks_dir(self) -> Path:
        return self.state_dir / "locks"

    @property
    def periods_dir(self) -> Path:
        return self.state_dir / "periods"

    @property
    def windows_dir(self) -> Path:
        return self.state_dir / "windows"

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        state_dir: Path | None = None,
    ) -> StateConfig:
        """``state_dir`` wins, then ``$XDG_STATE_HOME/once``, then ``~/.local/state/once``."""
        if state_dir is not None:
            return cls(state_dir=state_dir)
        env = os.environ if environ is None else environ
        xdg_state_home = env.get("XDG_STATE_HOME")
        if xdg_state_home:
            base = Path(xdg_state_home)
        else:
            home = env.get("HOME")
            base = (Path(home) if home else Path.home()) / ".local" / "state"
        return cls(state_dir=base / "once")


def resolve_mode(period: Granularity | None, window: str | None) -> Mode:
    """Pick the run mode; defaults to daily periods."""
    if period is not None and window is not None:
        raise UsageError("Use either --period or --window, not both.")
    if window is not None:
        return WindowMode(seconds=parse_duration(window), label=window)
    return PeriodMode(granularity=period or Granularity.DAY)
