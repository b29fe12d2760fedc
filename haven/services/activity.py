"""Last-active tracking and "Active 5m ago" style labels"""

from datetime import datetime, timedelta
from typing import Optional

ONLINE_WINDOW = timedelta(minutes=15)
# Profiles are written at most once per interval by the activity ping
PING_INTERVAL = timedelta(minutes=5)


def is_online(last_active_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if not last_active_at:
        return False
    now = now or datetime.utcnow()
    return now - last_active_at < ONLINE_WINDOW


def format_last_active(last_active_at: Optional[datetime], now: Optional[datetime] = None) -> str:
    if not last_active_at:
        return ""
    now = now or datetime.utcnow()
    diff = now - last_active_at
    minutes = int(diff.total_seconds() // 60)
    hours = int(diff.total_seconds() // 3600)
    days = diff.days

    if minutes < 15:
        return "Active now"
    if minutes < 60:
        return f"Active {minutes}m ago"
    if hours < 24:
        return f"Active {hours}h ago"
    if days == 1:
        return "Active yesterday"
    if days < 7:
        return f"Active {days}d ago"
    return "Active this month"


def should_record_activity(last_active_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if not last_active_at:
        return True
    now = now or datetime.utcnow()
    return now - last_active_at >= PING_INTERVAL
