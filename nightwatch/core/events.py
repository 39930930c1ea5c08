from __future__ import annotations

import logging
import signal
from dataclasses import dataclass
from enum import Enum


logger = logging.getLogger(__name__)


class EventKind(Enum):
    CREATED = "created"
    MODIFIED = "modified"
    REMOVED = "removed"
    OTHER = "other"


@dataclass(frozen=True)
class WatchEvent:
    path: str
    kind: EventKind
    is_directory: bool = False


@dataclass(frozen=True)
class RestartSignal:
    """Trigger for ending the current generation; carries only the signal."""
    signum: int = signal.SIGTERM


@dataclass(frozen=True)
class Classification:
    signal: RestartSignal | None = None
    unsubscribe: bool = False

    @property
    def restart(self) -> bool:
        return self.signal is not None


IGNORE = Classification()


def classify(event: WatchEvent, track_directories: bool = False) -> Classification:
    """Decide what a filesystem event means for the supervised process.

    Modifications always restart, creations restart only when new paths are
    tracked, and removals unsubscribe the path and restart.
    """
    if event.kind is EventKind.MODIFIED:
        logger.debug("modified: %s", event.path)
        return Classification(signal=RestartSignal())
    if event.kind is EventKind.CREATED:
        if not track_directories:
            return IGNORE
        logger.debug("created: %s", event.path)
        return Classification(signal=RestartSignal())
    if event.kind is EventKind.REMOVED:
        logger.debug("removed: %s", event.path)
        return Classification(signal=RestartSignal(), unsubscribe=True)
    return IGNORE
