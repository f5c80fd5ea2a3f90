from __future__ import annotations

import json
from pathlib import Path
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from once.models.enums import Decision, Granularity, Outcome


class Identity(BaseModel):
    """Everything that makes two invocations "the same command"."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    executable_path: str
    arguments: tuple[str, ...]
    working_dir: str
    extra_key: str = ""

    def serialize(self) -> str:
        """Canonical text form; the identity token is the hash of this."""
        args = json.dumps(list(self.arguments), ensure_ascii=False)
        return "\n".join(
            [
                f"exe={self.executable_path}",
                f"args={args}",
                f"cwd={self.working_dir}",
                f"extra={self.extra_key}",
            ]
        )


class Invocation(BaseModel):
    """A resolved command: argv as typed, its identity and identity token."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    argv: tuple[str, ...]
    identity: Identity
    token: str


class PeriodMode(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["period"] = "period"
    granularity: Granularity = Granularity.DAY


class WindowMode(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["window"] = "window"
    seconds: int = Field(ge=0)
    label: str


Mode = Union[PeriodMode, WindowMode]


class ExecutionPlan(BaseModel):
    """Where state for an invocation lives, computed without touching disk."""

    model_config = ConfigDict(extra="forbid")

    token: str
    bucket: str | None
    stamp_path: Path
    lock_path: Path


class ExecutionReport(BaseModel):
    """Result of a single controller run."""

    model_config = ConfigDict(extra="forbid")

    outcome: Outcome
    decision: Decision | None = None
    forced: bool = False
    dry_run: bool = False
    bucket: str | None = None
    elapsed_seconds: int | None = None
    exit_code: int | None = None
    stamp_path: Path
    lock_path: Path
