from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from usage_monitor.models.data_models import DailyStats, HealthStatus, Session
from usage_monitor.services.aggregator import SessionAggregator
from usage_monitor.services.coordinator import LogWatchCoordinator
from usage_monitor.services.feed import StatsFeed
from usage_monitor.services.locator import LogLocator
from usage_monitor.services.reader import UsageReader
from usage_monitor.services.storage import LogStore

# ──────────────────────────────────────────────────────────────────────────────
# Config
# ──────────────────────────────────────────────────────────────────────────────

API_PREFIX = "/api"
DEFAULT_LOG_DIR = "~/.config/claude"
DEFAULT_HISTORY_DAYS = 30
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger(__name__)


def env_int(name: str, default: int, minimum: int = 1) -> int:
    """Integer env var; missing, malformed or too small values fall back to `default`"""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer, using %d", name, raw, default)
        return default
    if value < minimum:
        logger.warning("Ignoring %s=%d: below %d, using %d", name, value, minimum, default)
        return default
    return value


def configure_logging() -> None:
    level = os.getenv("USAGE_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
    known = isinstance(logging.getLevelName(level), int)
    logging.basicConfig(level=level if known else DEFAULT_LOG_LEVEL, format=LOG_FORMAT)
    if not known:
        logger.warning("Unknown USAGE_LOG_LEVEL %r, using %s", level, DEFAULT_LOG_LEVEL)


# ──────────────────────────────────────────────────────────────────────────────
# Serialization
# ──────────────────────────────────────────────────────────────────────────────


def session_to_dict(s: Session) -> Dict[str, Any]:
    return {
        "start": s.start.isoformat(),
        "end": s.end.isoformat(),
        "duration_seconds": s.duration.total_seconds(),
        "event_count": s.event_count,
    }


def hourly_to_dict(stats: DailyStats) -> Dict[str, int]:
    return {f"{hour:02d}": count for hour, count in enumerate(stats.hourly_activity)}


def stats_to_dict(stats: DailyStats) -> Dict[str, Any]:
    return {
        "total_usage_seconds": stats.total_usage_time.total_seconds(),
        "total_usage_formatted": stats.formatted_time,
        "session_count": stats.session_count,
        "average_session_seconds": stats.average_session_length.total_seconds(),
        "average_session_formatted": stats.average_session_length_formatted,
        "last_active": stats.last_active.isoformat(),
        "hourly_activity": list(stats.hourly_activity),
        "event_count": stats.event_count,
        "total_tokens": stats.total_tokens,
        "total_cost": str(stats.total_cost),
        "events_by_model": dict(stats.events_by_model),
    }


# ──────────────────────────────────────────────────────────────────────────────
# App
# ──────────────────────────────────────────────────────────────────────────────


def create_app(log_dir: Optional[str] = None, history_days: Optional[int] = None) -> FastAPI:
    configure_logging()
    if log_dir is None:
        log_dir = os.path.expanduser(os.getenv("USAGE_LOG_DIR", DEFAULT_LOG_DIR))
    if history_days is None:
        history_days = env_int("USAGE_HISTORY_DAYS", DEFAULT_HISTORY_DAYS)

    locator = LogLocator(log_dir)
    reader = UsageReader()
    aggregator = SessionAggregator()
    feed = StatsFeed()
    watcher: Dict[str, Optional[LogWatchCoordinator]] = {"coordinator": None}

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        loop = asyncio.get_running_loop()
        coordinator = LogWatchCoordinator(
            locator,
            reader,
            aggregator,
            on_stats=feed.publish,
            dispatch=loop.call_soon_threadsafe,
        )
        watcher["coordinator"] = coordinator
        coordinator.start()
        try:
            yield
        finally:
            coordinator.stop()
            watcher["coordinator"] = None

    app = FastAPI(title="Usage Monitor (Usage Log → Session Analytics)", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # dev OK; lock down in prod
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def current_stats() -> DailyStats:
        """Latest published stats, or a synchronous read before the first publish"""
        latest = feed.latest
        if latest is not None:
            return latest
        coordinator = watcher["coordinator"]
        if coordinator is not None:
            return coordinator.refresh_now()
        try:
            return aggregator.compute_daily_stats(reader.read_current(locator).events)
        except OSError as e:
            logger.warning("Failed to read current usage log: %s", e)
            return aggregator.compute_daily_stats([])

    # ──────────────────────────────────────────────────────────────────────────
    # Health
    # ──────────────────────────────────────────────────────────────────────────

    @app.get(f"{API_PREFIX}/health")
    def health() -> Dict[str, Any]:
        ref = locator.resolve_current()
        store = LogStore(ref.path) if ref else None
        coordinator = watcher["coordinator"]
        stats = current_stats()

        status = HealthStatus(
            status="ok",
            log_dir=os.path.abspath(locator.directory),
            log_dir_exists=os.path.isdir(locator.directory),
            current_file=os.path.abspath(ref.path) if ref else None,
            log_file_exists=store.exists() if store else False,
            size_bytes=store.size_bytes() if store else 0,
            total_lines=store.count_lines() if store else 0,
            monitoring=coordinator.is_monitoring if coordinator else False,
            latest_timestamp=stats.last_active.isoformat() if stats.event_count else None,
        )
        return asdict(status)

    # ──────────────────────────────────────────────────────────────────────────
    # Today's stats
    # ──────────────────────────────────────────────────────────────────────────

    @app.get(f"{API_PREFIX}/stats")
    def stats() -> Dict[str, Any]:
        return {"stats": stats_to_dict(current_stats())}

    @app.get(f"{API_PREFIX}/sessions")
    def sessions() -> Dict[str, Any]:
        if locator.resolve_current() is None:
            raise HTTPException(status_code=404, detail="No usage log found")
        return {"sessions": [session_to_dict(s) for s in current_stats().sessions]}

    @app.get(f"{API_PREFIX}/traffic")
    def traffic() -> Dict[str, Any]:
        return {"hourly_distribution": hourly_to_dict(current_stats())}

    # ──────────────────────────────────────────────────────────────────────────
    # History
    # ──────────────────────────────────────────────────────────────────────────

    @app.get(f"{API_PREFIX}/history")
    def history(days: int = Query(history_days, ge=1, le=365)) -> Dict[str, Any]:
        out = []
        for ref, day_stats in reader.read_history(locator, aggregator, days):
            log_date = ref.log_date
            out.append(
                {
                    "date": log_date.isoformat() if log_date else None,
                    "file": os.path.basename(ref.path),
                    **stats_to_dict(day_stats),
                }
            )
        return {"history": out}

    return app


app = create_app()
