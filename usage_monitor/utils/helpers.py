"""
Helper Functions

This module contains utility functions used throughout the application.
"""

import re
from datetime import datetime, timezone, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from dateutil import parser as dtparser

# 2025-01-15T09:30:00.123+0000
TIMESTAMP_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}(?:[+-]\d{4}|Z)"
)


def parse_ts(x: Any) -> Optional[datetime]:
    """Parse a log timestamp (millisecond precision, explicit offset)"""
    if not isinstance(x, str) or not TIMESTAMP_RE.fullmatch(x):
        return None
    try:
        dt = dtparser.isoparse(x)
    except (ValueError, OverflowError):
        return None
    if dt.tzinfo is None:
        return None
    return dt.astimezone(timezone.utc)


def format_ts(dt: datetime) -> str:
    """Inverse of parse_ts, used when writing log lines"""
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}+0000"


def safe_count(x: Any) -> Optional[int]:
    """Non-negative JSON integer, None otherwise (bools are rejected)"""
    if isinstance(x, bool) or not isinstance(x, int):
        return None
    return x if x >= 0 else None


def safe_decimal(x: Any) -> Optional[Decimal]:
    """Non-negative JSON number as Decimal, None otherwise"""
    if isinstance(x, bool) or not isinstance(x, (int, float, Decimal)):
        return None
    try:
        value = x if isinstance(x, Decimal) else Decimal(str(x))
    except InvalidOperation:
        return None
    if not value.is_finite() or value < 0:
        return None
    return value


def local_hour(dt: datetime, tz: Optional[tzinfo] = None) -> int:
    """Hour of day in `tz` (system local time when tz is None)"""
    return dt.astimezone(tz).hour
