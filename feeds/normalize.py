"""
Pure transforms from backend rows to presentation view models.

Every function takes the raw row, the row's reaction snapshot (``None`` when
the reaction cache has nothing for it) and the reference time used for
relative timestamps. No I/O, no mutation.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Sequence

from feeds.models import (
    ForumCategory,
    ForumItem,
    HighlightType,
    ItemCategory,
    PropertyType,
    ReactionState,
    RentItem,
    RideItem,
    RideType,
    SecondhandItem,
    TeamCategory,
    TeamItem,
)
from feeds.rows import ForumRow, PostImage, RawPost, RentRow, RideRow, SecondhandRow, TeamRow
from feeds.timefmt import ensure_utc, format_price, format_time_ago, parse_date

logger = logging.getLogger(__name__)

UNKNOWN_AUTHOR = "Unknown"
ANONYMOUS_AUTHOR = "Anonymous"
URGENT_WINDOW = timedelta(days=7)

_PROPERTY_TYPES = {
    "room": PropertyType.ROOM,
    "studio": PropertyType.ROOM,
    "apartment": PropertyType.APARTMENT,
    "house": PropertyType.APARTMENT,
    "condo": PropertyType.APARTMENT,
    "sublease": PropertyType.SUBLEASE,
}

_ITEM_CATEGORIES = {
    "electronics": ItemCategory.ELECTRONICS,
    "books": ItemCategory.BOOKS,
    "textbooks": ItemCategory.BOOKS,
    "furniture": ItemCategory.FURNITURE,
    "clothing": ItemCategory.CLOTHING,
}

_TEAM_CATEGORIES = {
    "study": TeamCategory.STUDY,
    "course": TeamCategory.PROJECT,
    "project": TeamCategory.PROJECT,
    "hackathon": TeamCategory.HACKATHON,
    "sports": TeamCategory.SPORTS,
    "competition": TeamCategory.SOCIAL,
    "startup": TeamCategory.SOCIAL,
    "gaming": TeamCategory.SOCIAL,
    "social": TeamCategory.SOCIAL,
    "activity": TeamCategory.SOCIAL,
}

_FORUM_CATEGORIES = {
    "question": ForumCategory.QUESTION,
    "confession": ForumCategory.CONFESSION,
    "rant": ForumCategory.CONFESSION,
    "love": ForumCategory.CONFESSION,
}


def highlight_type(raw: Optional[str]) -> HighlightType:
    if not raw:
        return HighlightType.NORMAL
    try:
        return HighlightType(raw.lower())
    except ValueError:
        return HighlightType.NORMAL


def item_category(raw: str) -> ItemCategory:
    category = _ITEM_CATEGORIES.get((raw or "").lower())
    if category is None:
        logger.debug("Unknown item category '%s'; using OTHER", raw)
        return ItemCategory.OTHER
    return category


def team_category(raw: str) -> TeamCategory:
    category = _TEAM_CATEGORIES.get((raw or "").lower())
    if category is None:
        logger.debug("Unknown team category '%s'; using OTHER", raw)
        return TeamCategory.OTHER
    return category


def forum_category(raw: str, tags: Sequence[str]) -> ForumCategory:
    if any("meme" in tag.lower() or tag == "八卦" for tag in tags):
        return ForumCategory.MEME
    return _FORUM_CATEGORIES.get((raw or "").lower(), ForumCategory.DISCUSSION)


def is_sold_out(quantity: Optional[int], sold_count: Optional[int]) -> bool:
    return (quantity if quantity is not None else 1) <= (sold_count if sold_count is not None else 0)


def city_name(location: str) -> str:
    parts = [part.strip() for part in location.split(",") if part.strip()]
    if parts:
        return parts[-1]
    return location.strip()


def _first_image(images: Optional[Sequence[PostImage]]) -> Optional[str]:
    return images[0].url if images else None


def _base_fields(row: RawPost, reaction: Optional[ReactionState], now: datetime) -> Dict[str, Any]:
    reaction = reaction or ReactionState()
    return {
        "id": row.id,
        "author_id": row.user_id,
        "author_name": row.user_name or UNKNOWN_AUTHOR,
        "author_avatar": row.user_avatar,
        "created_at": row.created_at,
        "time_ago": format_time_ago(row.created_at, now),
        "highlight_type": highlight_type(row.highlight_type),
        "image_url": _first_image(row.images),
        "like_count": reaction.like_count,
        "is_liked": reaction.is_liked,
    }


def normalize_rent(row: RentRow, reaction: Optional[ReactionState], *, now: datetime) -> RentItem:
    bedrooms = max(row.bedrooms or 0, 0)
    bathrooms = max(int(round(row.bathrooms or 0)), 0)
    specs = row.specs if row.specs else f"{bedrooms} Bed • {bathrooms} Bath"
    available = parse_date(row.available_from)
    return RentItem(
        **_base_fields(row, reaction, now),
        title=row.title,
        price_label=f"{format_price(row.price)}/mo",
        price=row.price,
        location=row.location,
        city=city_name(row.location),
        specs=specs,
        property_type=_PROPERTY_TYPES.get(row.property_type.lower(), PropertyType.APARTMENT),
        description=row.description or "",
        amenities=tuple(row.amenities or ()),
        available_date=available.date() if available else None,
        bedrooms=bedrooms,
        bathrooms=bathrooms,
    )


def normalize_secondhand(
    row: SecondhandRow, reaction: Optional[ReactionState], *, now: datetime
) -> SecondhandItem:
    return SecondhandItem(
        **_base_fields(row, reaction, now),
        title=row.title,
        price_label=format_price(row.price),
        price=row.price,
        category=item_category(row.category),
        condition=row.condition,
        description=row.description or "",
        is_negotiable=row.is_negotiable,
        is_sold=is_sold_out(row.quantity, row.sold_count),
    )


def normalize_ride(row: RideRow, reaction: Optional[ReactionState], *, now: datetime) -> RideItem:
    price = row.price_per_seat or 0.0
    return RideItem(
        **_base_fields(row, reaction, now),
        title=f"{row.departure_location} → {row.destination_location}",
        price_label=f"{format_price(price)}/seat",
        origin=row.departure_location,
        destination=row.destination_location,
        departure_time=row.departure_time,
        price=price,
        seats=max(row.available_seats or 0, 0),
        ride_type=RideType.OFFERING if row.role == "driver" else RideType.LOOKING,
        car_model=row.notes or "",
    )


def normalize_team(row: TeamRow, reaction: Optional[ReactionState], *, now: datetime) -> TeamItem:
    current = max(row.current_members or 1, 1)
    maximum = max(row.team_size if row.team_size is not None else current, current)
    deadline = parse_date(row.deadline)
    urgent = False
    if deadline is not None:
        remaining = deadline - ensure_utc(now)
        urgent = timedelta(0) < remaining < URGENT_WINDOW
    return TeamItem(
        **_base_fields(row, reaction, now),
        title=row.title,
        price_label=None,
        description=row.description or "",
        category=team_category(row.category),
        current_members=current,
        max_members=maximum,
        skills=tuple(row.skills_needed or ()),
        deadline=deadline,
        is_urgent=urgent,
    )


def normalize_forum(row: ForumRow, reaction: Optional[ReactionState], *, now: datetime) -> ForumItem:
    tags = tuple(row.tags or ())
    fields = _base_fields(row, reaction, now)
    if row.is_anonymous:
        fields.update(author_id=None, author_name=ANONYMOUS_AUTHOR, author_avatar=None)
    return ForumItem(
        **fields,
        title=row.title,
        price_label=None,
        content=row.description or "",
        category=forum_category(row.category, tags),
        is_anonymous=row.is_anonymous,
        comment_count=row.comment_count or 0,
        view_count=row.view_count or 0,
        tags=tags,
        is_pinned=bool(row.is_pinned),
        image_urls=tuple(image.url for image in row.images or ()),
    )
