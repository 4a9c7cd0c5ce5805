# dupesweep/core/progress.py
import threading
import time
from typing import Callable, Optional

import structlog

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[str], None]


class CancellationToken:
    """A flag the caller sets and the pipeline polls between units of work."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class ProgressReporter:
    """
    Rate-limited wrapper around a progress callback.

    Messages closer together than `interval` seconds are dropped unless
    `force` is set, which is used for stage boundaries. A failing callback
    is logged and otherwise ignored.
    """

    def __init__(
        self,
        callback: Optional[ProgressCallback],
        interval: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.callback = callback
        self.interval = interval
        self._clock = clock
        self._last_emit: Optional[float] = None

    def report(self, message: str, force: bool = False) -> bool:
        if self.callback is None:
            return False
        now = self._clock()
        if not force and self._last_emit is not None and now - self._last_emit < self.interval:
            return False
        self._last_emit = now
        try:
            self.callback(message)
        except Exception as e:
            logger.warning("progress_callback_failed", error=str(e))
        return True

    def report_percent(self, label: str, done: int, total: int, detail: str = "") -> bool:
        percent = int(done * 100 / total) if total else 100
        message = f"{label} {percent}%..."
        if detail:
            message = f"{label} {percent}% - {detail}"
        return self.report(message)
