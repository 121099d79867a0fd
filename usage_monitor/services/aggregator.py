"""
SessionAggregator Class - Computes sessions and daily statistics

This module turns an ordered sequence of usage events into DailyStats.
Nothing here touches the filesystem.
"""

from datetime import datetime, timedelta, tzinfo
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from usage_monitor.models.data_models import DailyStats, Session, UsageEvent
from usage_monitor.utils.helpers import local_hour

SESSION_GAP = timedelta(minutes=5)


class SessionAggregator:
    """
    Aggregates usage events into sessions and statistics.
    Responsibilities:
    - Split events into sessions on gaps above the threshold
    - Compute the local-hour activity histogram
    - Compute totals and averages

    Events are taken in the order given; an out-of-order pair simply
    produces whatever gap it produces.
    """

    def __init__(self, session_gap: timedelta = SESSION_GAP, tz: Optional[tzinfo] = None):
        self.session_gap = session_gap
        self.tz = tz

    def build_sessions(self, events: Sequence[UsageEvent]) -> List[Session]:
        sessions: List[Session] = []
        session_start: Optional[datetime] = None
        last_seen: Optional[datetime] = None
        count = 0

        for e in events:
            if session_start is None or last_seen is None:
                session_start = last_seen = e.timestamp
            elif e.timestamp - last_seen > self.session_gap:
                sessions.append(Session(session_start, last_seen, count))
                session_start = e.timestamp
                count = 0
            last_seen = e.timestamp
            count += 1

        if session_start is not None and last_seen is not None:
            sessions.append(Session(session_start, last_seen, count))
        return sessions

    def compute_hourly(self, events: Sequence[UsageEvent]) -> List[int]:
        """Raw event count per local hour of day"""
        hourly = [0] * 24
        for e in events:
            hourly[local_hour(e.timestamp, self.tz)] += 1
        return hourly

    def compute_daily_stats(
        self, events: Sequence[UsageEvent], now: Optional[datetime] = None
    ) -> DailyStats:
        """Compute DailyStats from a snapshot of events"""
        if not events:
            return DailyStats.empty(now or datetime.now().astimezone())

        sessions = self.build_sessions(events)
        total = sum((s.duration for s in sessions), timedelta(0))
        average = total / len(sessions)

        by_model: Dict[str, int] = {}
        for e in events:
            by_model[e.model] = by_model.get(e.model, 0) + 1

        return DailyStats(
            total_usage_time=total,
            session_count=len(sessions),
            average_session_length=average,
            last_active=events[-1].timestamp,
            hourly_activity=tuple(self.compute_hourly(events)),
            sessions=tuple(sessions),
            event_count=len(events),
            total_tokens=sum(e.total_tokens for e in events),
            total_cost=sum((e.cost for e in events), Decimal("0")),
            events_by_model=tuple(sorted(by_model.items())),
        )
