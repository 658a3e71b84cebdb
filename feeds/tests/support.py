"""
Row builders and wiring shared by the feed tests.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from feeds.hub import FeedHub
from feeds.session import StaticSession
from feeds.store import MemoryStore

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
ME = "user-me"


def clock() -> datetime:
    return NOW


def iso(minutes_ago: int = 0) -> str:
    return (NOW - timedelta(minutes=minutes_ago)).isoformat()


def _base(post_id: str, rank: Optional[int], hot: Optional[float], minutes_ago: int) -> Dict[str, Any]:
    return {
        "id": post_id,
        "user_id": f"author-{post_id}",
        "created_at": iso(minutes_ago),
        "user_name": f"Author {post_id}",
        "highlight_type": "normal",
        "highlight_rank": rank,
        "hot_score": hot,
    }


def secondhand_row(post_id: str, *, rank: Optional[int] = 1, hot: Optional[float] = 0.0, minutes_ago: int = 5, **extra) -> Dict[str, Any]:
    row = _base(post_id, rank, hot, minutes_ago)
    row.update(title=f"Item {post_id}", category="electronics", condition="used", price=40.0)
    row.update(extra)
    return row


def rent_row(post_id: str, *, rank: Optional[int] = 1, hot: Optional[float] = 0.0, minutes_ago: int = 5, **extra) -> Dict[str, Any]:
    row = _base(post_id, rank, hot, minutes_ago)
    row.update(title=f"Room {post_id}", property_type="room", price=1200.0, location="12 Main St, Irvine")
    row.update(extra)
    return row


def ride_row(post_id: str, *, rank: Optional[int] = 1, hot: Optional[float] = 0.0, minutes_ago: int = 5, **extra) -> Dict[str, Any]:
    row = _base(post_id, rank, hot, minutes_ago)
    row.update(
        departure_location="Irvine",
        destination_location="LAX",
        departure_time=(NOW + timedelta(days=2)).isoformat(),
        available_seats=3,
        price_per_seat=25.0,
        role="driver",
    )
    row.update(extra)
    return row


def team_row(post_id: str, *, rank: Optional[int] = 1, hot: Optional[float] = 0.0, minutes_ago: int = 5, **extra) -> Dict[str, Any]:
    row = _base(post_id, rank, hot, minutes_ago)
    row.update(title=f"Team {post_id}", category="hackathon", team_size=4, current_members=2)
    row.update(extra)
    return row


def forum_row(post_id: str, *, rank: Optional[int] = 1, hot: Optional[float] = 0.0, minutes_ago: int = 5, **extra) -> Dict[str, Any]:
    row = _base(post_id, rank, hot, minutes_ago)
    row.update(title=f"Thread {post_id}", category="question", is_anonymous=False)
    row.update(extra)
    return row


def likes(post_id: str, user_ids: Iterable[str]) -> List[Dict[str, Any]]:
    return [{"user_id": user_id, "target_type": "post", "target_id": post_id} for user_id in user_ids]


def make_store(**tables: List[Dict[str, Any]]) -> MemoryStore:
    tables.setdefault("likes", [])
    return MemoryStore(tables, unique={"likes": ("user_id", "target_type", "target_id")})


def make_hub(store: MemoryStore, user_id: Optional[str] = ME) -> FeedHub:
    return FeedHub(store, StaticSession(user_id), clock=clock)


async def settle(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)
