"""
Watcher Layer - Filesystem monitoring.

Subscribes watch targets with watchdog, normalizes the events it reports,
and runs the event loop that classifies them into restart signals for the
supervisor.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
from typing import Callable, Iterable, List, Optional, Union

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .core.channel import RestartChannel
from .core.errors import WatchError
from .core.events import EventKind, WatchEvent, classify
from .core.paths import WatchTarget, watched_dir

logger = logging.getLogger(__name__)

StreamItem = Union[WatchEvent, Exception]

_STOP = object()


def _decode(path: Union[str, bytes, None]) -> str:
    if not path:
        return ""
    return os.fsdecode(path)


def normalize(event: FileSystemEvent, covers: Callable[[str], bool]) -> List[WatchEvent]:
    """Translate a watchdog event into WatchEvents for subscribed paths.

    A move is reported as a removal of a subscribed source and a modification
    of a subscribed destination, which is how editors that save by renaming
    a temporary file show up. A directory's own ``modified`` notification is
    just an mtime bump from its children and is kept as OTHER.

    Args:
        event: Event delivered by the watchdog observer
        covers: Predicate telling whether a path belongs to the subscription

    Returns:
        List[WatchEvent]: Zero, one or two normalized events
    """
    src = _decode(event.src_path)
    is_dir = bool(event.is_directory)

    if event.event_type == EVENT_TYPE_MOVED:
        out = []
        if covers(src):
            out.append(WatchEvent(src, EventKind.REMOVED, is_dir))
        dest = _decode(getattr(event, "dest_path", ""))
        if dest and covers(dest):
            out.append(WatchEvent(dest, EventKind.MODIFIED, is_dir))
        return out

    if not covers(src):
        return []

    if event.event_type == EVENT_TYPE_MODIFIED:
        kind = EventKind.OTHER if is_dir else EventKind.MODIFIED
    elif event.event_type == EVENT_TYPE_CREATED:
        kind = EventKind.CREATED
    elif event.event_type == EVENT_TYPE_DELETED:
        kind = EventKind.REMOVED
    else:
        kind = EventKind.OTHER
    return [WatchEvent(src, kind, is_dir)]


class NightwatchEventHandler(FileSystemEventHandler):
    """Feeds normalized watchdog events into a subscription's stream."""

    def __init__(self, subscription: "WatchSubscription"):
        super().__init__()
        self.subscription = subscription

    def on_any_event(self, event: FileSystemEvent) -> None:
        try:
            items = normalize(event, self.subscription.covers)
        except Exception as exc:
            self.subscription.events.put(
                WatchError(f"cannot handle {event.event_type} event: {exc}")
            )
            return
        for item in items:
            self.subscription.events.put(item)


class WatchSubscription:
    """Set of watched paths backed by one watchdog observer.

    Watches are not recursive. A directory target gets a watch of its own;
    a file target is observed through its parent directory and events for
    its siblings are filtered out. ``events`` is the stream of WatchEvents
    and error items consumed by :class:`EventPump`.
    """

    def __init__(self, observer_factory: Callable[[], object] = Observer):
        self.events: "queue.Queue[object]" = queue.Queue()
        self._handler = NightwatchEventHandler(self)
        self._entries: dict[str, WatchTarget] = {}
        self._watches: dict[str, object] = {}
        self._lock = threading.Lock()
        try:
            self._observer = observer_factory()
            self._observer.start()
        except (OSError, RuntimeError) as exc:
            raise WatchError(f"cannot create filesystem watcher: {exc}") from exc

    @property
    def paths(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def covers(self, path: str) -> bool:
        with self._lock:
            if path in self._entries:
                return True
            parent = self._entries.get(os.path.dirname(path))
            return parent is not None and parent.is_directory

    def add(self, target: WatchTarget) -> None:
        """Subscribe *target*.

        Raises:
            WatchError: If the path is missing or cannot be watched
        """
        if not os.path.exists(target.path):
            raise WatchError(f"failed to watch {target.path}: no such file or directory")

        directory = watched_dir(target)
        with self._lock:
            scheduled = directory in self._watches
        # Scheduling takes the observer's lock, which is also held while
        # handlers run, so it must happen outside self._lock.
        if not scheduled:
            try:
                watch = self._observer.schedule(self._handler, directory, recursive=False)
            except OSError as exc:
                raise WatchError(f"failed to watch {target.path}: {exc}") from exc
            with self._lock:
                self._watches[directory] = watch
        with self._lock:
            self._entries[target.path] = target
        logger.debug("watching file %s", target.path)

    def add_all(self, targets: Iterable[WatchTarget]) -> None:
        for target in targets:
            self.add(target)

    def remove(self, path: str) -> bool:
        """Unsubscribe *path*; returns False if it was not subscribed."""
        with self._lock:
            target = self._entries.pop(path, None)
            if target is None:
                return False
            directory = watched_dir(target)
            needed = any(watched_dir(t) == directory for t in self._entries.values())
            watch = None if needed else self._watches.pop(directory, None)
        if watch is not None:
            try:
                self._observer.unschedule(watch)
            except (KeyError, OSError) as exc:
                logger.debug("unschedule %s: %s", directory, exc)
        logger.debug("stopped watching %s", path)
        return True

    def close(self, timeout: float = 5.0) -> None:
        self._observer.stop()
        self._observer.join(timeout=timeout)


class EventPump:
    """Consumes a subscription's event stream and schedules restarts.

    Runs on its own thread; it is the only code that mutates the
    subscription once watching has started.
    """

    def __init__(
        self,
        subscription: WatchSubscription,
        channel: RestartChannel,
        track_directories: bool = False,
    ):
        self.subscription = subscription
        self.channel = channel
        self.track_directories = track_directories
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._run, name="EventPump", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self.subscription.events.put(_STOP)
        thread = self._thread
        if thread and thread.is_alive():
            thread.join(timeout)
        self._thread = None

    def _run(self) -> None:
        while True:
            item = self.subscription.events.get()
            if item is _STOP:
                break
            self.handle(item)  # type: ignore[arg-type]

    def handle(self, item: StreamItem) -> bool:
        """Process one stream item; True if it scheduled a restart."""
        if isinstance(item, Exception):
            logger.warning("error: %s", item)
            return False

        result = classify(item, self.track_directories)
        if result.unsubscribe:
            self.subscription.remove(item.path)
        if result.signal is None:
            return False
        return self.channel.offer(result.signal)
