"""
StatsFeed Class - Publishes the latest statistics to listeners
"""

import threading
from typing import Callable, List, Optional

from usage_monitor.models.data_models import DailyStats


class StatsFeed:
    """Holds the latest published DailyStats and fans it out to listeners"""

    def __init__(self):
        self.listeners: List[Callable[[DailyStats], None]] = []
        self._latest: Optional[DailyStats] = None
        self._lock = threading.Lock()

    @property
    def latest(self) -> Optional[DailyStats]:
        with self._lock:
            return self._latest

    def subscribe(self, fn: Callable[[DailyStats], None]):
        self.listeners.append(fn)

    def publish(self, stats: DailyStats):
        with self._lock:
            self._latest = stats
        for listener in self.listeners:
            listener(stats)
