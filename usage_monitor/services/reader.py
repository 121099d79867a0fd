"""
UsageReader Class - Reads log files into events

Combines LogStore (file access) with LogParser (line decoding).
"""

import logging
from typing import List, Optional, Tuple

from usage_monitor.models.data_models import DailyStats, LogFileRef, ReadResult
from usage_monitor.services.aggregator import SessionAggregator
from usage_monitor.services.locator import LogLocator
from usage_monitor.services.parser import LogParser
from usage_monitor.services.storage import LogStore

logger = logging.getLogger(__name__)


class UsageReader:
    """
    Reads usage log files into events.
    Responsibilities:
    - Combine a LogStore and a LogParser for one file
    - Read whichever file the locator resolves as current
    - Summarize historical files, one DailyStats per file
    """

    def __init__(self, log_parser: Optional[LogParser] = None):
        self.parser = log_parser or LogParser()

    def read(self, path: str) -> ReadResult:
        """
        Read and parse every line of `path`.
        OSError (other than a missing file) propagates to the caller.
        """
        store = LogStore(path)
        return self.parser.parse_lines(store.read_lines(), source=path)

    def read_current(self, locator: LogLocator) -> ReadResult:
        ref = locator.resolve_current()
        if ref is None:
            logger.info("No usage log files found in %s", locator.directory)
            return ReadResult(path=None)
        return self.read(ref.path)

    def read_history(
        self,
        locator: LogLocator,
        aggregator: SessionAggregator,
        days: int = 30,
    ) -> List[Tuple[LogFileRef, DailyStats]]:
        """Per-file stats for the last `days` log files, oldest first"""
        history: List[Tuple[LogFileRef, DailyStats]] = []
        for ref in locator.list_historical(days):
            try:
                result = self.read(ref.path)
            except OSError as e:
                logger.warning("Skipping unreadable log %s: %s", ref.path, e)
                continue
            history.append((ref, aggregator.compute_daily_stats(result.events)))
        return history
