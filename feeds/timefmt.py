"""
Stateless time and price formatting helpers.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def format_time_ago(created_at: datetime, now: datetime) -> str:
    interval = (ensure_utc(now) - ensure_utc(created_at)).total_seconds()
    if interval < 60:
        return "just now"
    if interval < 3600:
        return f"{int(interval // 60)}m ago"
    if interval < 86400:
        return f"{int(interval // 3600)}h ago"
    return f"{int(interval // 86400)}d ago"


def format_price(price: float) -> str:
    return f"${price:,.0f}"


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """Accept full ISO-8601 timestamps or bare ``YYYY-MM-DD`` dates."""
    if not value:
        return None
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return ensure_utc(datetime.fromisoformat(raw))
    except ValueError:
        pass
    try:
        return datetime.strptime(raw[:10], "%Y-%m-%d").replace(tzinfo=timezone.utc)
    except ValueError:
        return None
