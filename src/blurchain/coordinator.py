from __future__ import annotations
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from .errors import ErrorKind
from .notifier import LoggingNotifier, Notifier
from .stages import CleanupStage, Failed, JobContext, Ok, SaveStage, Stage
from .store import ArtifactLocator, ArtifactStore

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    IDLE = "idle"
    CLEANING = "cleaning"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in (JobState.SUCCEEDED, JobState.FAILED, JobState.CANCELLED)


@dataclass(frozen=True)
class JobOutcome:
    job_name: str
    state: JobState
    locator: Optional[ArtifactLocator] = None    # set only on SUCCEEDED
    error_kind: Optional[ErrorKind] = None
    message: str = ""
    stage_index: Optional[int] = None            # stage that failed / was next when cancelled

    @property
    def ok(self) -> bool:
        return self.state is JobState.SUCCEEDED


class ChainCoordinator:
    """
    Runs one job: cleanup, the configured stages in order, then save.

    The output of stage i is the only input of stage i+1. Any failure stops
    the chain and save is skipped. Cancellation is honoured between stages.
    One instance per run; it cannot be restarted once terminal.
    """

    def __init__(self, store: ArtifactStore, notifier: Optional[Notifier] = None) -> None:
        self.store = store
        self.notifier = notifier or LoggingNotifier()
        self.state = JobState.IDLE
        self.stage_index: Optional[int] = None

    def _notify(self, job_name: str, message: str) -> None:
        try:
            self.notifier.notify(job_name, message)
        except Exception:
            logger.warning("notifier failed for %r: %s", job_name, message, exc_info=True)

    def _finish(self, ctx: JobContext, outcome: JobOutcome, message: str) -> JobOutcome:
        self.state = outcome.state
        self._notify(ctx.job_name, message)
        logger.info("job %r %s", ctx.job_name, outcome.state.value)
        return outcome

    def run(
        self,
        job_name: str,
        input_locator: Optional[ArtifactLocator],
        stages: Sequence[Stage],
        cancel_event: Optional[threading.Event] = None,
    ) -> JobOutcome:
        if self.state is not JobState.IDLE:
            raise RuntimeError(f"coordinator already used (state={self.state.value})")

        chain: List[Stage] = list(stages) + [SaveStage()]
        ctx = JobContext(job_name=job_name, stages=chain, notifier=self.notifier, current=input_locator)
        if cancel_event is not None:
            ctx.cancel_event = cancel_event

        self.state = JobState.CLEANING
        CleanupStage()(ctx, self.store)

        n = len(chain)
        for i, stage in enumerate(chain):
            if ctx.cancelled:
                return self._finish(
                    ctx,
                    JobOutcome(job_name, JobState.CANCELLED, error_kind=ErrorKind.CANCELLED,
                               message="cancelled", stage_index=i),
                    f"Cancelled before {stage.name}",
                )
            self.state = JobState.RUNNING
            self.stage_index = i
            self._notify(job_name, f"Starting {stage.name} (step {i + 1}/{n})")
            logger.info("job %r: %r", job_name, stage)

            result = stage(ctx, self.store)
            if isinstance(result, Failed):
                return self._finish(
                    ctx,
                    JobOutcome(job_name, JobState.FAILED, error_kind=result.kind,
                               message=result.message, stage_index=i),
                    f"{stage.name} failed: {result.message}",
                )
            if not isinstance(result, Ok):
                raise TypeError(f"{stage.name} returned {result!r}, expected Ok or Failed")
            ctx.current = result.locator

        return self._finish(
            ctx,
            JobOutcome(job_name, JobState.SUCCEEDED, locator=ctx.current),
            f"Succeeded: {ctx.current}",
        )
