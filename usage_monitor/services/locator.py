"""
LogLocator Class - Finds usage log files

Log files live in one directory and are named usage_<YYYY-MM-DD>.jsonl after
the local calendar date they were created on.
"""

import logging
import os
import stat
from datetime import datetime
from typing import Callable, List, Optional

from usage_monitor.models.data_models import LogFileRef

logger = logging.getLogger(__name__)


class LogLocator:
    """
    Resolves which log file is current and lists older ones.
    Directory listing failures are treated as "no files".
    """

    def __init__(
        self,
        directory: str,
        prefix: str = "usage_",
        suffix: str = ".jsonl",
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.directory = directory
        self.prefix = prefix
        self.suffix = suffix
        self.clock = clock

    def today_path(self) -> str:
        """Expected path of today's log file (local calendar date)"""
        today = self.clock().strftime("%Y-%m-%d")
        return os.path.join(self.directory, f"{self.prefix}{today}{self.suffix}")

    def is_log_file(self, name: str) -> bool:
        return name.startswith(self.prefix) and name.endswith(self.suffix)

    def resolve_current(self) -> Optional[LogFileRef]:
        """
        Today's file if present, otherwise the matching file with the
        latest modification time (the writer's date may be skewed from ours).
        """
        today = self._ref(self.today_path())
        if today is not None:
            return today

        refs = self._scan()
        if not refs:
            return None
        latest = max(refs, key=lambda r: r.mtime)
        logger.info("Today's log not found, using most recent: %s", latest.path)
        return latest

    def list_historical(self, limit: int = 30) -> List[LogFileRef]:
        """At most `limit` newest files by name, returned oldest first"""
        if limit <= 0:
            return []
        refs = sorted(self._scan(), key=lambda r: os.path.basename(r.path), reverse=True)
        return list(reversed(refs[:limit]))

    def _scan(self) -> List[LogFileRef]:
        if not os.path.isdir(self.directory):
            return []
        try:
            names = os.listdir(self.directory)
        except OSError as e:
            logger.warning("Could not list %s: %s", self.directory, e)
            return []

        refs: List[LogFileRef] = []
        for name in names:
            if not self.is_log_file(name):
                continue
            ref = self._ref(os.path.join(self.directory, name))
            if ref is not None:
                refs.append(ref)
        return refs

    @staticmethod
    def _ref(path: str) -> Optional[LogFileRef]:
        try:
            st = os.stat(path)
        except OSError:
            return None
        if not stat.S_ISREG(st.st_mode):
            return None
        return LogFileRef(path=path, mtime=st.st_mtime)
