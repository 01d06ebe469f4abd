# FILE: pwa2apk/services/build_monitor.py
"""
Polling for a dispatched GitHub Actions run.

repository_dispatch returns no run id, so the run that was just triggered is
recognised by recency: the latest dispatch run created inside the match window.
After that the run is re-read by id until it reaches a terminal state.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from pwa2apk.core.config import (
    COMPLETION_MAX_POLLS,
    COMPLETION_POLL_SECONDS,
    RUN_MATCH_WINDOW_SECONDS,
    RUN_START_MAX_ATTEMPTS,
    RUN_START_POLL_SECONDS,
)
from pwa2apk.schemas.build import RunConclusion, RunStatus, WorkflowRun
from pwa2apk.services.build_exceptions import (
    BuildError,
    CompletionTimeoutError,
    RunStartTimeoutError,
    WorkflowConclusionError,
)

logger = logging.getLogger("pwa2apk.monitor")

SIMULATED_PROGRESS_STEP = 5
SIMULATED_PROGRESS_CAP = 90

FAILED_CONCLUSIONS = {RunConclusion.FAILURE, RunConclusion.CANCELLED}

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PollSettings:
    run_start_attempts: int = RUN_START_MAX_ATTEMPTS
    run_start_interval: float = RUN_START_POLL_SECONDS
    match_window_seconds: float = RUN_MATCH_WINDOW_SECONDS
    completion_interval: float = COMPLETION_POLL_SECONDS
    # None keeps completion polling unbounded
    completion_max_polls: Optional[int] = COMPLETION_MAX_POLLS or None
    sleep: Sleep = field(default=asyncio.sleep, compare=False)
    clock: Clock = field(default=utcnow, compare=False)


def simulate_progress(current: int, step: int = SIMULATED_PROGRESS_STEP, cap: int = SIMULATED_PROGRESS_CAP) -> int:
    """
    Cosmetic progress bump for an in-progress run. GitHub reports no build
    percentage, so this is not derived from anything upstream.
    """
    return max(current, min(current + step, cap))


def is_recent_run(run: WorkflowRun, now: datetime, window_seconds: float) -> bool:
    created = run.created_at
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (now - created).total_seconds() < window_seconds


async def await_run_start(
    fetch_latest_run: Callable[[], Awaitable[Optional[WorkflowRun]]],
    settings: PollSettings = PollSettings(),
) -> WorkflowRun:
    """Wait for the freshly dispatched run to appear."""
    for attempt in range(1, settings.run_start_attempts + 1):
        await settings.sleep(settings.run_start_interval)
        try:
            run = await fetch_latest_run()
        except BuildError as e:
            logger.warning(f"Polling error (attempt {attempt}/{settings.run_start_attempts}): {e}")
            continue

        if run and is_recent_run(run, settings.clock(), settings.match_window_seconds):
            logger.info(f"Matched workflow run {run.id} (#{run.run_number}) on attempt {attempt}")
            return run

    raise RunStartTimeoutError("Timed out waiting for workflow to start.")


async def await_completion(
    fetch_run: Callable[[], Awaitable[WorkflowRun]],
    run: WorkflowRun,
    settings: PollSettings = PollSettings(),
    on_log: Optional[Callable[[str, str], None]] = None,
    on_progress: Optional[Callable[[], None]] = None,
) -> WorkflowRun:
    """
    Poll the run until it completes. A failed or cancelled conclusion raises
    WorkflowConclusionError; any other completed run is returned.
    """
    polls = 0
    while True:
        if settings.completion_max_polls is not None and polls >= settings.completion_max_polls:
            raise CompletionTimeoutError(
                f"Workflow run {run.id} still {run.status} after {polls} status checks."
            )

        await settings.sleep(settings.completion_interval)
        run = await fetch_run()
        polls += 1

        if run.status == RunStatus.IN_PROGRESS:
            if on_log:
                on_log(f"Build in progress... ({run.conclusion or 'running'})", "info")
            if on_progress:
                on_progress()

        if run.conclusion in FAILED_CONCLUSIONS:
            raise WorkflowConclusionError(run.conclusion)

        if run.status == RunStatus.COMPLETED:
            logger.info(f"Workflow run {run.id} completed ({run.conclusion}) after {polls} checks")
            return run
