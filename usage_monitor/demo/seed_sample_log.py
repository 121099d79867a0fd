# usage_monitor/demo/seed_sample_log.py

import json
import os
import random
from datetime import datetime, timedelta

from usage_monitor.services.locator import LogLocator
from usage_monitor.utils.helpers import format_ts

DEFAULT_LOG_DIR = os.path.expanduser(os.getenv("USAGE_LOG_DIR", "~/.config/claude"))


def write_sample_log(log_dir: str = DEFAULT_LOG_DIR, count: int = 20) -> str:
    """Write `count` entries, one every 5 minutes from 3 hours ago, to today's log"""
    os.makedirs(log_dir, exist_ok=True)
    path = LogLocator(log_dir).today_path()
    start = datetime.now().astimezone() - timedelta(hours=3)

    with open(path, "w", encoding="utf-8") as f:
        for i in range(count):
            entry = {
                "timestamp": format_ts(start + timedelta(minutes=5 * i)),
                "model": "claude-3-5-sonnet-20241022",
                "input_tokens": random.randint(100, 1000),
                "output_tokens": random.randint(200, 2000),
                "cache_creation_input_tokens": 0,
                "cache_read_input_tokens": random.randint(0, 500),
                "cost": round(random.uniform(0.01, 0.10), 4),
            }
            f.write(json.dumps(entry) + "\n")
    return path


if __name__ == "__main__":
    print(f"Sample data created at: {write_sample_log()}")
