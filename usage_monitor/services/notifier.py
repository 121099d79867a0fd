"""
ChangeNotifier Class - Debounced change signal for one path

The OS primitive behind it is abstracted as a WatchSource that delivers a
best-effort, possibly redundant "this path may have changed" callback.
ChangeNotifier turns that into at most one `changed` per modification-time
change.
"""

import logging
import os
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

# write/extend/rename class events
RELEVANT_EVENTS = frozenset({EVENT_TYPE_MODIFIED, EVENT_TYPE_CREATED, EVENT_TYPE_MOVED})


class WatchHandle(ABC):
    """An active OS-level subscription"""

    @abstractmethod
    def close(self) -> None:
        """Release the subscription; must be safe to call twice"""


class WatchSource(ABC):
    """Platform-independent change notification interface"""

    @abstractmethod
    def subscribe(self, path: str, callback: Callable[[], None]) -> WatchHandle:
        """
        Start delivering raw notifications for `path` to `callback`.
        Raises OSError when the path cannot be watched.
        """


class _PathEventHandler(FileSystemEventHandler):
    def __init__(self, path: str, callback: Callable[[], None], is_dir: bool):
        super().__init__()
        self.path = path
        self.callback = callback
        self.is_dir = is_dir

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in RELEVANT_EVENTS:
            return
        if self.is_dir:
            self.callback()
            return
        paths = {os.path.realpath(os.fsdecode(event.src_path))}
        dest = getattr(event, "dest_path", "")
        if dest:
            paths.add(os.path.realpath(os.fsdecode(dest)))
        if self.path in paths:
            self.callback()


class _ObserverHandle(WatchHandle):
    def __init__(self, observer: Observer):
        self._observer: Optional[Observer] = observer

    def close(self) -> None:
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        if observer is not threading.current_thread():
            observer.join()


class WatchdogSource(WatchSource):
    """
    WatchSource backed by watchdog.
    Each subscription gets its own Observer thread, so callbacks for one
    subscription never run concurrently.
    """

    def subscribe(self, path: str, callback: Callable[[], None]) -> WatchHandle:
        path = os.path.realpath(path)
        is_dir = os.path.isdir(path)
        watch_dir = path if is_dir else os.path.dirname(path)

        observer = Observer()
        try:
            observer.schedule(_PathEventHandler(path, callback, is_dir), watch_dir, recursive=False)
            observer.start()
        except OSError:
            observer.unschedule_all()
            raise
        return _ObserverHandle(observer)


class ChangeNotifier:
    """
    Watches exactly one path at a time: Idle -> Monitoring -> Idle.

    start() on a monitoring notifier stops the previous subscription first;
    stop() is idempotent. Raw notifications are debounced on the path's
    modification time.
    """

    def __init__(self, on_changed: Callable[[], None], source: Optional[WatchSource] = None):
        self.on_changed = on_changed
        self.source = source or WatchdogSource()
        self._lock = threading.Lock()
        self._handle: Optional[WatchHandle] = None
        self._path: Optional[str] = None
        self._generation = 0
        self._last_mtime_ns: Optional[int] = None

    @property
    def path(self) -> Optional[str]:
        return self._path

    @property
    def is_monitoring(self) -> bool:
        return self._handle is not None

    def start(self, path: str) -> bool:
        """Begin monitoring `path`. Returns False (and stays idle) on failure."""
        self.stop()

        if not os.path.exists(path):
            logger.warning("Cannot monitor missing path: %s", path)
            return False

        with self._lock:
            self._generation += 1
            generation = self._generation
            self._path = path
            self._last_mtime_ns = None
            try:
                self._handle = self.source.subscribe(
                    path, lambda: self._on_raw_event(generation)
                )
            except OSError as e:
                logger.warning("Failed to monitor %s: %s", path, e)
                self._path = None
                self._generation += 1
                return False

        logger.debug("Monitoring %s", path)
        return True

    def stop(self) -> None:
        with self._lock:
            handle, self._handle = self._handle, None
            self._path = None
            self._generation += 1
        # outside the lock: closing may wait for an in-flight callback
        if handle is not None:
            handle.close()

    def _on_raw_event(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._path is None:
                return
            try:
                mtime_ns = os.stat(self._path).st_mtime_ns
            except OSError:
                return
            if mtime_ns == self._last_mtime_ns:
                return
            self._last_mtime_ns = mtime_ns

        self.on_changed()

    def __enter__(self) -> "ChangeNotifier":
        return self

    def __exit__(self, *exc) -> None:
        self.stop()
