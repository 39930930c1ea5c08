from __future__ import annotations

import logging
import threading

from .events import RestartSignal

logger = logging.getLogger(__name__)


class RestartChannel:
    """Single-slot mailbox for restart signals.

    ``offer`` never blocks and drops the signal when the slot is taken, so a
    burst of changes schedules one restart. ``put`` always lands, replacing
    whatever is pending; it is reserved for stop requests.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._pending: RestartSignal | None = None

    def offer(self, signal: RestartSignal) -> bool:
        with self._cond:
            if self._pending is not None:
                logger.debug("restart already scheduled, ignoring change.")
                return False
            self._pending = signal
            self._cond.notify_all()
            return True

    def put(self, signal: RestartSignal) -> None:
        with self._cond:
            self._pending = signal
            self._cond.notify_all()

    def get(self, timeout: float | None = None) -> RestartSignal | None:
        with self._cond:
            self._cond.wait_for(lambda: self._pending is not None, timeout)
            signal, self._pending = self._pending, None
            return signal

    def clear(self) -> RestartSignal | None:
        with self._cond:
            signal, self._pending = self._pending, None
            return signal

    @property
    def pending(self) -> bool:
        with self._cond:
            return self._pending is not None
