"""
LogStore Class - Handles file I/O operations

This module reads a single usage log file.
"""

import os
from typing import Iterator


class LogStore:
    """
    Read-only access to one log file.
    Responsibilities:
    - Read raw log lines, blank ones included
    - Provide file statistics
    """

    def __init__(self, file_path: str):
        self.file_path = file_path

    def read_lines(self) -> Iterator[str]:
        """
        Iterator over raw lines in the log file.
        A missing file yields nothing; other OSErrors propagate.
        """
        try:
            with open(self.file_path, "r", encoding="utf-8", errors="replace") as f:
                for line in f:
                    yield line.rstrip("\r\n")
        except FileNotFoundError:
            return

    def exists(self) -> bool:
        return os.path.isfile(self.file_path)

    def size_bytes(self) -> int:
        try:
            return os.path.getsize(self.file_path)
        except OSError:
            return 0

    def count_lines(self) -> int:
        try:
            return sum(1 for _ in self.read_lines())
        except OSError:
            return 0
