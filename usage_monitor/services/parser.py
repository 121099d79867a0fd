"""
LogParser Class - Handles parsing and validation

This module parses raw usage log lines into structured UsageEvent objects.
"""

import json
import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from usage_monitor.models.data_models import ReadResult, UsageEvent
from usage_monitor.utils.helpers import parse_ts, safe_count, safe_decimal

logger = logging.getLogger(__name__)

# log field -> UsageEvent attribute
COUNTER_FIELDS = {
    "input_tokens": "input_tokens",
    "output_tokens": "output_tokens",
    "cache_creation_input_tokens": "cache_creation_tokens",
    "cache_read_input_tokens": "cache_read_tokens",
}


class EntryParseError(ValueError):
    """A non-empty log line that could not be turned into a UsageEvent"""

    def __init__(self, message: str, line_number: Optional[int] = None):
        super().__init__(message)
        self.line_number = line_number


class LogParser:
    """
    Parses raw log lines into UsageEvent objects.
    Responsibilities:
    - Decode JSON lines (costs decoded exactly as Decimal)
    - Validate required fields and their types
    - Read a whole file's lines, counting bad ones instead of failing
    """

    @staticmethod
    def parse_json(line: str) -> Optional[Dict[str, Any]]:
        """Parse JSON line, return None if invalid or not an object"""
        try:
            obj = json.loads(line, parse_float=Decimal)
        except (ValueError, RecursionError):
            return None
        return obj if isinstance(obj, dict) else None

    @staticmethod
    def normalize(raw: Dict[str, Any]) -> UsageEvent:
        """
        Build a UsageEvent from a decoded log object.
        Raises EntryParseError naming the first offending field.
        """
        ts = parse_ts(raw.get("timestamp"))
        if ts is None:
            raise EntryParseError(f"invalid timestamp: {raw.get('timestamp')!r}")

        model = raw.get("model")
        if not isinstance(model, str):
            raise EntryParseError(f"invalid model: {model!r}")

        counters: Dict[str, int] = {}
        for key, attr in COUNTER_FIELDS.items():
            value = safe_count(raw.get(key))
            if value is None:
                raise EntryParseError(f"invalid {key}: {raw.get(key)!r}")
            counters[attr] = value

        cost = safe_decimal(raw.get("cost"))
        if cost is None:
            raise EntryParseError(f"invalid cost: {raw.get('cost')!r}")

        return UsageEvent(timestamp=ts, model=model, cost=cost, **counters)

    def parse_line(self, line: str) -> Optional[UsageEvent]:
        """
        Parse one line.
        Returns None for an empty line; raises EntryParseError for a bad one.
        """
        text = line.strip()
        if not text:
            return None
        raw = self.parse_json(text)
        if raw is None:
            raise EntryParseError("line is not a JSON object")
        return self.normalize(raw)

    def parse_lines(self, lines: Iterable[str], source: Optional[str] = None) -> ReadResult:
        """Parse every line, keeping accepted events in their original order"""
        result = ReadResult(path=source)

        for index, line in enumerate(lines, start=1):
            try:
                event = self.parse_line(line)
            except EntryParseError as e:
                e.line_number = index
                result.parse_errors += 1
                if result.parse_errors == 1:
                    logger.warning("Failed to parse line %d of %s: %s", index, source, e)
                continue
            if event is None:
                result.skipped_lines += 1
            else:
                result.events.append(event)

        if result.parse_errors > 1:
            logger.warning("Failed to parse %d lines of %s", result.parse_errors, source)
        logger.debug("Read %d events from %s", len(result.events), source)
        return result
