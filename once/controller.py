from __future__ import annotations

import logging
from collections.abc import Callable

from once.buckets import bucket_label, elapsed_seconds, local_now
from once.config import StateConfig
from once.errors import LockBusy
from once.lock import LockManager, terminate_on_signals
from once.models.enums import Decision, Outcome
from once.runner import Executor, run_command
from once.storage import StampStore
from once.types import ExecutionPlan, ExecutionReport, Invocation, Mode, PeriodMode, WindowMode
from once.utils import now_ts

logger = logging.getLogger(__name__)


class ExecutionController:
    """Lock, decide, run and stamp a single invocation."""

    def __init__(
        self,
        config: StateConfig,
        *,
        stamps: StampStore | None = None,
        locks: LockManager | None = None,
        executor: Executor = run_command,
        clock: Callable[[], float] = now_ts,
    ) -> None:
        self.config = config
        self.stamps = stamps if stamps is not None else StampStore(config)
        self.locks = locks if locks is not None else LockManager(config)
        self.executor = executor
        self.clock = clock

    def plan(self, invocation: Invocation, mode: Mode) -> ExecutionPlan:
        """Compute bucket and state paths without touching the filesystem."""
        return self._plan(invocation, mode, self.clock())

    def execute(
        self,
        invocation: Invocation,
        mode: Mode,
        *,
        force: bool = False,
        dry_run: bool = False,
    ) -> ExecutionReport:
        now = self.clock()
        plan = self._plan(invocation, mode, now)

        def report(outcome: Outcome, **fields: object) -> ExecutionReport:
            return ExecutionReport(
                outcome=outcome,
                forced=force,
                dry_run=dry_run,
                bucket=plan.bucket,
                stamp_path=plan.stamp_path,
                lock_path=plan.lock_path,
                **fields,
            )

        try:
            lock = self.locks.acquire(plan.token)
        except LockBusy:
            return report(Outcome.BUSY)

        with lock, terminate_on_signals():
            elapsed = None
            if force:
                decision = Decision.RUN
            else:
                decision, elapsed = self._decide(mode, plan, now)
            logger.debug("decision %s (forced=%s, elapsed=%s)", decision.value, force, elapsed)

            if decision is Decision.SKIP:
                return report(Outcome.SKIPPED, decision=decision, elapsed_seconds=elapsed)
            if dry_run:
                return report(Outcome.WOULD_RUN, decision=decision, elapsed_seconds=elapsed)

            exit_code = self.executor(
                invocation.argv,
                executable=invocation.identity.executable_path,
                cwd=invocation.identity.working_dir,
            )
            if exit_code != 0:
                return report(
                    Outcome.FAILED,
                    decision=decision,
                    elapsed_seconds=elapsed,
                    exit_code=exit_code,
                )

            self.stamps.mark_now(mode, plan.token, plan.bucket)
            return report(
                Outcome.EXECUTED,
                decision=decision,
                elapsed_seconds=elapsed,
                exit_code=exit_code,
            )

    def _plan(self, invocation: Invocation, mode: Mode, now: float) -> ExecutionPlan:
        bucket = None
        if isinstance(mode, PeriodMode):
            bucket = bucket_label(mode.granularity, local_now(now))
            logger.debug("bucket %s", bucket)
        return ExecutionPlan(
            token=invocation.token,
            bucket=bucket,
            stamp_path=self.stamps.stamp_path(mode, invocation.token, bucket),
            lock_path=self.locks.lock_path(invocation.token),
        )

    def _decide(self, mode: Mode, plan: ExecutionPlan, now: float) -> tuple[Decision, int | None]:
        if isinstance(mode, WindowMode):
            elapsed = elapsed_seconds(self.stamps.last_modified(mode, plan.token), now)
            if elapsed is not None and elapsed < mode.seconds:
                return Decision.SKIP, elapsed
            return Decision.RUN, elapsed

        if self.stamps.exists(mode, plan.token, plan.bucket):
            return Decision.SKIP, None
        return Decision.RUN, None
