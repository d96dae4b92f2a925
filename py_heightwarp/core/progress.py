"""Progress reporting and cooperative cancellation for long-running passes."""

import threading
from typing import Callable, Optional

import structlog

from .errors import RunCancelled

logger = structlog.get_logger()

ProgressCallback = Callable[[str, int, int], None]


class RunMonitor:
    """
    Shared between a running pass and its coordinator.

    The pass calls checkpoint() between rows; the coordinator may call
    cancel() from any thread. Rows finished before the checkpoint that
    observes the cancellation are kept.
    """

    def __init__(self, on_progress: Optional[ProgressCallback] = None, log_every: int = 100):
        self.on_progress = on_progress
        self.log_every = log_every
        self._cancel_event = threading.Event()

    def cancel(self) -> None:
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def checkpoint(self, stage: str, done: int, total: int) -> None:
        """
        Report progress, then stop the pass if cancellation was requested.

        Raises:
            RunCancelled: if cancel() has been called
        """
        if self.on_progress is not None:
            self.on_progress(stage, done, total)
        if self.log_every and done % self.log_every == 0:
            logger.debug("Pass progress", stage=stage, done=done, total=total)
        if self.cancelled:
            raise RunCancelled(stage, done)
