"""
Tests for debounced change notification.
"""

import os
import threading

from watchdog.events import (
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from tests.conftest import FailingWatchSource, bump_mtime, write_log
from usage_monitor.services.notifier import ChangeNotifier, WatchdogSource, _PathEventHandler


class Counter:
    def __init__(self):
        self.calls = 0
        self.event = threading.Event()

    def __call__(self):
        self.calls += 1
        self.event.set()


class TestDebounce:
    """Test that raw notifications collapse onto modification-time changes."""

    def test_first_notification_emits(self, tmp_path, watch_source):
        path = str(tmp_path / "usage.jsonl")
        write_log(path, [0])
        changed = Counter()
        notifier = ChangeNotifier(changed, source=watch_source)

        assert notifier.start(path) is True
        watch_source.fire(path)
        assert changed.calls == 1

    def test_duplicate_notifications_emit_once(self, tmp_path, watch_source):
        path = str(tmp_path / "usage.jsonl")
        write_log(path, [0])
        changed = Counter()
        notifier = ChangeNotifier(changed, source=watch_source)
        notifier.start(path)

        watch_source.fire(path)
        watch_source.fire(path)
        assert changed.calls == 1

    def test_new_mtime_emits_again(self, tmp_path, watch_source):
        path = str(tmp_path / "usage.jsonl")
        write_log(path, [0])
        changed = Counter()
        notifier = ChangeNotifier(changed, source=watch_source)
        notifier.start(path)

        watch_source.fire(path)
        write_log(path, [60], mode="a")
        bump_mtime(path)
        watch_source.fire(path)
        watch_source.fire(path)
        assert changed.calls == 2

    def test_notification_for_deleted_path_is_swallowed(self, tmp_path, watch_source):
        path = str(tmp_path / "usage.jsonl")
        write_log(path, [0])
        changed = Counter()
        notifier = ChangeNotifier(changed, source=watch_source)
        notifier.start(path)

        os.remove(path)
        watch_source.fire(path)
        assert changed.calls == 0


class TestLifecycle:
    """Test start/stop transitions."""

    def test_missing_path_stays_idle(self, tmp_path, watch_source):
        notifier = ChangeNotifier(Counter(), source=watch_source)

        assert notifier.start(str(tmp_path / "missing.jsonl")) is False
        assert notifier.is_monitoring is False
        assert notifier.path is None
        assert watch_source.subscribed == []

    def test_subscription_failure_stays_idle(self, tmp_path):
        path = str(tmp_path / "usage.jsonl")
        write_log(path, [0])
        notifier = ChangeNotifier(Counter(), source=FailingWatchSource())

        assert notifier.start(path) is False
        assert notifier.is_monitoring is False

    def test_stop_is_idempotent(self, tmp_path, watch_source):
        path = str(tmp_path / "usage.jsonl")
        write_log(path, [0])
        notifier = ChangeNotifier(Counter(), source=watch_source)

        notifier.stop()
        notifier.start(path)
        notifier.stop()
        notifier.stop()

        assert notifier.is_monitoring is False
        assert watch_source.active == []

    def test_restart_releases_previous_subscription(self, tmp_path, watch_source):
        first = str(tmp_path / "a.jsonl")
        second = str(tmp_path / "b.jsonl")
        write_log(first, [0])
        write_log(second, [0])
        changed = Counter()
        notifier = ChangeNotifier(changed, source=watch_source)

        notifier.start(first)
        notifier.start(second)

        assert watch_source.watched_paths() == [second]
        assert notifier.path == second
        watch_source.fire(first)
        assert changed.calls == 0

    def test_stale_callback_after_restart_is_ignored(self, tmp_path, watch_source):
        first = str(tmp_path / "a.jsonl")
        second = str(tmp_path / "b.jsonl")
        write_log(first, [0])
        write_log(second, [0])
        changed = Counter()
        notifier = ChangeNotifier(changed, source=watch_source)

        notifier.start(first)
        stale = watch_source.active[0].callback
        notifier.start(second)
        stale()
        assert changed.calls == 0

    def test_no_emission_after_stop(self, tmp_path, watch_source):
        path = str(tmp_path / "usage.jsonl")
        write_log(path, [0])
        changed = Counter()
        notifier = ChangeNotifier(changed, source=watch_source)
        notifier.start(path)
        callback = watch_source.active[0].callback

        notifier.stop()
        callback()
        assert changed.calls == 0

    def test_context_manager_stops(self, tmp_path, watch_source):
        path = str(tmp_path / "usage.jsonl")
        write_log(path, [0])

        with ChangeNotifier(Counter(), source=watch_source) as notifier:
            notifier.start(path)
            assert notifier.is_monitoring
        assert watch_source.active == []


class TestWatchdogHandler:
    """Test event filtering of the watchdog adapter."""

    def test_file_handler_filters_by_path(self, tmp_path):
        target = os.path.realpath(str(tmp_path / "usage.jsonl"))
        other = os.path.realpath(str(tmp_path / "other.jsonl"))
        changed = Counter()
        handler = _PathEventHandler(target, changed, is_dir=False)

        handler.on_any_event(FileModifiedEvent(other))
        assert changed.calls == 0
        handler.on_any_event(FileModifiedEvent(target))
        handler.on_any_event(FileCreatedEvent(target))
        handler.on_any_event(FileMovedEvent(other, target))
        assert changed.calls == 3

    def test_deletes_are_ignored(self, tmp_path):
        target = os.path.realpath(str(tmp_path / "usage.jsonl"))
        changed = Counter()
        handler = _PathEventHandler(target, changed, is_dir=False)

        handler.on_any_event(FileDeletedEvent(target))
        assert changed.calls == 0

    def test_directory_handler_accepts_children(self, tmp_path):
        changed = Counter()
        handler = _PathEventHandler(str(tmp_path), changed, is_dir=True)

        handler.on_any_event(FileCreatedEvent(str(tmp_path / "usage_2026-10-20.jsonl")))
        handler.on_any_event(DirModifiedEvent(str(tmp_path)))
        assert changed.calls == 2

    def test_real_write_is_observed(self, tmp_path):
        path = str(tmp_path / "usage.jsonl")
        write_log(path, [0])
        changed = Counter()
        notifier = ChangeNotifier(changed, source=WatchdogSource())

        assert notifier.start(path)
        try:
            write_log(path, [60], mode="a")
            assert changed.event.wait(timeout=5)
        finally:
            notifier.stop()
        assert notifier.is_monitoring is False
