"""
Qt Scheduler (Timers)
=====================
Delayed callbacks on the Qt event loop for the timed training run.

Why is this file needed?
------------------------
1. Responsiveness: a timed run must not block the event loop. Each step is a
   single-shot QTimer, so the GUI repaints between steps.
2. Cancellation: the engine keeps the returned handle and cancels it on stop or
   reset. A cancelled handle never invokes its callback.
3. Lifetime: the scheduler holds every pending handle itself, so a callback
   fires even when the caller drops the handle it was given.

Classes:
    QtTimerHandle: Wraps one single-shot QTimer.
    QtScheduler: Implements the engine's Scheduler protocol.
"""
import logging
from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer

logger = logging.getLogger(__name__)


class QtTimerHandle:
    def __init__(
        self,
        timer: QTimer,
        callback: Callable[[], None],
        on_done: Optional[Callable[["QtTimerHandle"], None]] = None,
    ) -> None:
        self._timer = timer
        self._callback = callback
        self._on_done = on_done
        self._done = False
        self._timer.timeout.connect(self._fire)

    @property
    def active(self) -> bool:
        return not self._done

    def _fire(self) -> None:
        if self._done:
            return
        self._finish()
        self._callback()

    def cancel(self) -> None:
        if self._done:
            return
        self._timer.stop()
        self._finish()

    def _finish(self) -> None:
        self._done = True
        self._timer.deleteLater()
        if self._on_done is not None:
            self._on_done(self)


class QtScheduler(QObject):
    """Creates single-shot timers parented to this object."""

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._pending: set[QtTimerHandle] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def schedule(self, delay: float, callback: Callable[[], None]) -> QtTimerHandle:
        timer = QTimer(self)
        timer.setSingleShot(True)
        timer.setInterval(max(0, int(round(delay * 1000))))
        handle = QtTimerHandle(timer, callback, on_done=self._pending.discard)
        self._pending.add(handle)
        timer.start()
        logger.debug(f"Scheduled training step in {timer.interval()} ms.")
        return handle
