"""
Data Models (DTOs - Data Transfer Objects)

This module contains all dataclass definitions used throughout the application.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

_LOG_DATE_RE = re.compile(r"(\d{4}-\d{2}-\d{2})")


@dataclass(frozen=True)
class UsageEvent:
    """One usage record, as written on one line of the log"""
    timestamp: datetime
    model: str
    input_tokens: int
    output_tokens: int
    cache_creation_tokens: int
    cache_read_tokens: int
    cost: Decimal

    @property
    def total_tokens(self) -> int:
        return (
            self.input_tokens
            + self.output_tokens
            + self.cache_creation_tokens
            + self.cache_read_tokens
        )


@dataclass(frozen=True)
class Session:
    """A run of events with no gap above the session threshold"""
    start: datetime
    end: datetime
    event_count: int = 1

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


def _format_hours_minutes(total_seconds: int) -> str:
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    return f"{hours}h {minutes}m"


@dataclass(frozen=True)
class DailyStats:
    """
    Aggregated statistics for one log file.
    Always rebuilt from scratch, never patched.
    """
    total_usage_time: timedelta
    session_count: int
    average_session_length: timedelta
    last_active: datetime
    hourly_activity: Tuple[int, ...]
    sessions: Tuple[Session, ...] = ()
    event_count: int = 0
    total_tokens: int = 0
    total_cost: Decimal = Decimal("0")
    events_by_model: Tuple[Tuple[str, int], ...] = ()

    @classmethod
    def empty(cls, now: datetime) -> "DailyStats":
        return cls(
            total_usage_time=timedelta(0),
            session_count=0,
            average_session_length=timedelta(0),
            last_active=now,
            hourly_activity=(0,) * 24,
        )

    @property
    def total_minutes(self) -> int:
        return int(self.total_usage_time.total_seconds() // 60)

    @property
    def formatted_time(self) -> str:
        """Total usage as "Xh Ym" """
        return _format_hours_minutes(int(self.total_usage_time.total_seconds()))

    @property
    def average_session_length_formatted(self) -> str:
        if self.session_count == 0:
            return "0m"
        avg_minutes = int(self.average_session_length.total_seconds() // 60)
        if avg_minutes >= 60:
            return _format_hours_minutes(avg_minutes * 60)
        return f"{avg_minutes}m"


@dataclass(frozen=True)
class LogFileRef:
    """A resolved log file and its modification time"""
    path: str
    mtime: float

    @property
    def log_date(self) -> Optional[date]:
        """Date embedded in the file name (usage_YYYY-MM-DD.jsonl)"""
        name = self.path.replace("\\", "/").rsplit("/", 1)[-1]
        match = _LOG_DATE_RE.search(name)
        if not match:
            return None
        try:
            return date.fromisoformat(match.group(1))
        except ValueError:
            return None


@dataclass
class ReadResult:
    """Outcome of reading one log file"""
    path: Optional[str]
    events: List[UsageEvent] = field(default_factory=list)
    parse_errors: int = 0
    skipped_lines: int = 0

    @property
    def total_lines(self) -> int:
        return len(self.events) + self.skipped_lines + self.parse_errors


@dataclass
class HealthStatus:
    """Health check response"""
    status: str
    log_dir: str
    log_dir_exists: bool
    current_file: Optional[str]
    log_file_exists: bool
    size_bytes: int
    total_lines: int
    monitoring: bool
    latest_timestamp: Optional[str] = None
