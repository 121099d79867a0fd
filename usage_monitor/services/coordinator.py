"""
LogWatchCoordinator Class - Keeps DailyStats live as the log changes

Owns two ChangeNotifiers: one on the current log file, one on the log
directory. Directory changes trigger a rotation check (new day, or a log file
appearing for the first time); file changes trigger a re-read and a publish.

Threading:
- raw notifications arrive on the notifiers' own threads
- rotation checks and refreshes run on one single-worker executor
- results are handed to `dispatch`, which delivers them on the subscriber's
  context (inline by default)
- nothing is delivered once stop() has returned
"""

import logging
import os
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, Optional

from usage_monitor.models.data_models import DailyStats
from usage_monitor.services.aggregator import SessionAggregator
from usage_monitor.services.locator import LogLocator
from usage_monitor.services.notifier import ChangeNotifier
from usage_monitor.services.reader import UsageReader

logger = logging.getLogger(__name__)

Dispatch = Callable[[Callable[[], None]], object]
NotifierFactory = Callable[[Callable[[], None]], ChangeNotifier]


def _call_inline(fn: Callable[[], None]) -> None:
    fn()


class LogWatchCoordinator:
    """
    Keeps published statistics in step with the usage log.
    Responsibilities:
    - Watch the current log file and its directory
    - Switch to a new file when the log rotates
    - Run one refresh at a time on a single worker
    - Deliver stats through dispatch, never after stop()
    """

    def __init__(
        self,
        locator: LogLocator,
        reader: UsageReader,
        aggregator: SessionAggregator,
        on_stats: Callable[[DailyStats], None],
        dispatch: Optional[Dispatch] = None,
        notifier_factory: Optional[NotifierFactory] = None,
        executor: Optional[Executor] = None,
    ):
        self.locator = locator
        self.reader = reader
        self.aggregator = aggregator
        self.on_stats = on_stats
        self.dispatch = dispatch or _call_inline

        make_notifier = notifier_factory or ChangeNotifier
        self.file_notifier = make_notifier(self._on_file_changed)
        self.directory_notifier = make_notifier(self._on_directory_changed)

        self._owns_executor = executor is None
        self._executor = executor
        self._lock = threading.RLock()
        self._monitoring = False
        self._current_path: Optional[str] = None

    @property
    def is_monitoring(self) -> bool:
        return self._monitoring

    @property
    def current_path(self) -> Optional[str]:
        return self._current_path

    def start(self) -> None:
        """Start watching and schedule one initial read-and-publish"""
        with self._lock:
            if self._monitoring:
                return
            self._monitoring = True
            if self._owns_executor:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="usage-watch"
                )

            ref = self.locator.resolve_current()
            self._current_path = ref.path if ref else None
            if ref is not None:
                self.file_notifier.start(ref.path)
            if os.path.isdir(self.locator.directory):
                self.directory_notifier.start(self.locator.directory)

        logger.info(
            "Watching %s (current log: %s)", self.locator.directory, self._current_path
        )
        self._submit(self._refresh)

    def stop(self) -> None:
        """Stop both notifiers. Safe to call repeatedly or before start()."""
        with self._lock:
            was_monitoring = self._monitoring
            self._monitoring = False
            executor = self._executor if self._owns_executor else None
            if self._owns_executor:
                self._executor = None

        self.file_notifier.stop()
        self.directory_notifier.stop()
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)
        if was_monitoring:
            logger.info("Stopped watching %s", self.locator.directory)

    def refresh_now(self) -> DailyStats:
        """Read and aggregate synchronously, without publishing"""
        path = self._current_path
        if path is None:
            ref = self.locator.resolve_current()
            path = ref.path if ref else None
        if path is None:
            return self.aggregator.compute_daily_stats([])
        try:
            result = self.reader.read(path)
        except OSError as e:
            logger.warning("Failed to read %s: %s", path, e)
            return self.aggregator.compute_daily_stats([])
        return self.aggregator.compute_daily_stats(result.events)

    # -------- notifier callbacks (notifier threads) --------

    def _on_file_changed(self) -> None:
        self._submit(self._refresh)

    def _on_directory_changed(self) -> None:
        self._submit(self._check_rotation)

    def _submit(self, fn: Callable[[], None]) -> None:
        executor = self._executor
        if not self._monitoring or executor is None:
            return
        try:
            executor.submit(self._run, fn)
        except RuntimeError:
            # executor shut down by a concurrent stop()
            logger.debug("Dropped %s after stop", fn.__name__)

    @staticmethod
    def _run(fn: Callable[[], None]) -> None:
        try:
            fn()
        except Exception:
            logger.exception("Usage log update failed")

    # -------- serialized work (executor thread) --------

    def _check_rotation(self) -> None:
        ref = self.locator.resolve_current()
        with self._lock:
            if not self._monitoring:
                return
            if ref is None or ref.path == self._current_path:
                return
            logger.info("Usage log rotated: %s -> %s", self._current_path, ref.path)
            self.file_notifier.stop()
            self._current_path = ref.path
            self.file_notifier.start(ref.path)
        self._refresh()

    def _refresh(self) -> None:
        if not self._monitoring:
            return
        path = self._current_path
        if path is None:
            stats = self.aggregator.compute_daily_stats([])
        else:
            try:
                result = self.reader.read(path)
            except OSError as e:
                logger.warning("Failed to read %s, skipping update: %s", path, e)
                return
            stats = self.aggregator.compute_daily_stats(result.events)
        self.dispatch(lambda: self._deliver(stats))

    def _deliver(self, stats: DailyStats) -> None:
        with self._lock:
            if not self._monitoring:
                return
            self.on_stats(stats)
