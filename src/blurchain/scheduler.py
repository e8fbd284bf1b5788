from __future__ import annotations
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence

from .coordinator import ChainCoordinator, JobOutcome, JobState
from .errors import ErrorKind
from .helpers import ChainConfig
from .notifier import LoggingNotifier, Notifier
from .stages import Stage, stages_from_config
from .store import ArtifactLocator, ArtifactStore

logger = logging.getLogger(__name__)


class JobHandle:
    """Result channel of one scheduled run."""

    def __init__(self, job_name: str, cancel_event: threading.Event) -> None:
        self.job_name = job_name
        self.cancel_event = cancel_event
        self.future: Optional[Future] = None

    def cancel(self) -> None:
        # future is never cancelled: a queued run still waits on its predecessor before reporting CANCELLED
        self.cancel_event.set()

    def done(self) -> bool:
        return self.future is not None and self.future.done()

    def result(self, timeout: Optional[float] = None) -> JobOutcome:
        return self.future.result(timeout=timeout)


class JobScheduler:
    """
    Local stand-in for the host job service.

    At most one live run per job name: starting a name that is already in
    flight cancels the old run and the new one waits for it to stop before
    touching the namespace. Each run waits on the run it replaced, so a chain
    of replacements resolves back to whichever run is actually executing.
    Different names run concurrently.
    """

    def __init__(self, store: ArtifactStore, notifier: Optional[Notifier] = None, max_workers: int = 4) -> None:
        self.store = store
        self.notifier = notifier or LoggingNotifier()
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="blurchain")
        self._lock = threading.Lock()
        self._live: Dict[str, JobHandle] = {}

    def _execute(self, handle: JobHandle, prior: Optional[JobHandle],
                 input_locator: Optional[ArtifactLocator], stages: List[Stage]) -> JobOutcome:
        if prior is not None:
            # prior was submitted first, so it is running or done: no pool deadlock
            try:
                prior.result()
            except Exception:
                logger.warning("superseded run of %r raised; starting replacement anyway",
                               handle.job_name, exc_info=True)
        if handle.cancel_event.is_set():
            return JobOutcome(handle.job_name, JobState.CANCELLED, error_kind=ErrorKind.CANCELLED,
                              message="replaced before start")
        coordinator = ChainCoordinator(self.store, self.notifier)
        return coordinator.run(handle.job_name, input_locator, stages, cancel_event=handle.cancel_event)

    def _forget(self, handle: JobHandle) -> None:
        with self._lock:
            if self._live.get(handle.job_name) is handle:
                del self._live[handle.job_name]

    def start(self, job_name: str, input_locator: Optional[ArtifactLocator],
              config: Optional[ChainConfig] = None, stages: Optional[Sequence[Stage]] = None) -> JobHandle:
        """Queue a run; `stages` overrides the chain built from `config`."""
        chain = list(stages) if stages is not None else stages_from_config(config)
        self.store.namespace(job_name)  # rejects bad names up front
        with self._lock:
            prior = self._live.get(job_name)
            if prior is not None:
                logger.info("replacing live run of %r", job_name)
                prior.cancel()
            handle = JobHandle(job_name, threading.Event())
            handle.future = self._pool.submit(self._execute, handle, prior, input_locator, chain)
            self._live[job_name] = handle
        handle.future.add_done_callback(lambda _f: self._forget(handle))
        return handle

    def cancel(self, job_name: str) -> bool:
        with self._lock:
            handle = self._live.get(job_name)
        if handle is None:
            return False
        handle.cancel()
        return True

    def live_jobs(self) -> list[str]:
        with self._lock:
            return sorted(self._live)

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)

    def __enter__(self) -> "JobScheduler":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown(wait=True)
