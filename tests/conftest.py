"""
Shared fixtures: a controllable WatchSource, an inline executor and helpers
for writing usage logs.
"""

import json
import os
from concurrent.futures import Executor, Future
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Dict, Iterable, List

import pytest

from usage_monitor.models.data_models import UsageEvent
from usage_monitor.services.notifier import WatchHandle, WatchSource
from usage_monitor.utils.helpers import format_ts

BASE_TIME = datetime(2026, 10, 19, 9, 0, 0, tzinfo=timezone.utc)


class FakeHandle(WatchHandle):
    def __init__(self, source: "FakeWatchSource", path: str, callback: Callable[[], None]):
        self.source = source
        self.path = path
        self.callback = callback
        self.closed = False

    def close(self) -> None:
        self.closed = True
        if self in self.source.active:
            self.source.active.remove(self)


class FakeWatchSource(WatchSource):
    """Delivers raw notifications only when a test calls fire()"""

    def __init__(self):
        self.active: List[FakeHandle] = []
        self.subscribed: List[str] = []

    def subscribe(self, path: str, callback: Callable[[], None]) -> WatchHandle:
        handle = FakeHandle(self, path, callback)
        self.active.append(handle)
        self.subscribed.append(path)
        return handle

    def watched_paths(self) -> List[str]:
        return [h.path for h in self.active]

    def fire(self, path: str) -> None:
        for handle in list(self.active):
            if handle.path == path:
                handle.callback()


class FailingWatchSource(WatchSource):
    def subscribe(self, path: str, callback: Callable[[], None]) -> WatchHandle:
        raise OSError("inotify watch limit reached")


class ImmediateExecutor(Executor):
    """Runs submitted work on the calling thread"""

    def submit(self, fn, *args, **kwargs):
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


def make_event(offset_seconds: float = 0, model: str = "claude-sonnet", **overrides) -> UsageEvent:
    fields = dict(
        timestamp=BASE_TIME + timedelta(seconds=offset_seconds),
        model=model,
        input_tokens=100,
        output_tokens=200,
        cache_creation_tokens=0,
        cache_read_tokens=50,
        cost=Decimal("0.01"),
    )
    fields.update(overrides)
    return UsageEvent(**fields)


def log_record(ts: datetime, model: str = "claude-sonnet", cost: float = 0.01) -> Dict:
    return {
        "timestamp": format_ts(ts),
        "model": model,
        "input_tokens": 100,
        "output_tokens": 200,
        "cache_creation_input_tokens": 0,
        "cache_read_input_tokens": 50,
        "cost": cost,
    }


def write_log(path: str, offsets: Iterable[float], base: datetime = BASE_TIME, mode: str = "w") -> None:
    with open(path, mode, encoding="utf-8") as f:
        for offset in offsets:
            f.write(json.dumps(log_record(base + timedelta(seconds=offset))) + "\n")


def bump_mtime(path: str, seconds: int = 10) -> None:
    """Move a file's mtime forward so a change is visible at any granularity"""
    st = os.stat(path)
    os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + seconds * 1_000_000_000))


@pytest.fixture
def watch_source() -> FakeWatchSource:
    return FakeWatchSource()


@pytest.fixture
def log_dir(tmp_path) -> str:
    d = tmp_path / "claude"
    d.mkdir()
    return str(d)
