"""
Core data structures shared by the feed services.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional, Sequence, Tuple

# (field, ascending) pairs, applied left to right.
OrderSpec = Sequence[Tuple[str, bool]]
# (field, operator, value) triples; operators are "eq" and "in".
Filters = Sequence[Tuple[str, str, Any]]

# Promoted content first, then engagement, then recency.
FEED_ORDER: Tuple[Tuple[str, bool], ...] = (
    ("highlight_rank", True),
    ("hot_score", False),
    ("created_at", False),
)


class PostKind(str, Enum):
    RENT = "rent"
    SECONDHAND = "secondhand"
    RIDE = "ride"
    TEAM = "team"
    FORUM = "forum"

    @property
    def display_name(self) -> str:
        return _KIND_DISPLAY_NAMES[self]


_KIND_DISPLAY_NAMES = {
    PostKind.RENT: "Rent",
    PostKind.SECONDHAND: "Market",
    PostKind.RIDE: "Carpool",
    PostKind.TEAM: "Groups",
    PostKind.FORUM: "Forum",
}


class HighlightType(str, Enum):
    NORMAL = "normal"
    URGENT = "urgent"
    PINNED = "pinned"
    BREAKING = "breaking"


class PropertyType(str, Enum):
    ROOM = "room"
    APARTMENT = "apartment"
    SUBLEASE = "sublease"


class ItemCategory(str, Enum):
    ELECTRONICS = "electronics"
    BOOKS = "books"
    FURNITURE = "furniture"
    CLOTHING = "clothing"
    OTHER = "other"


class RideType(str, Enum):
    OFFERING = "offering"
    LOOKING = "looking"


class TeamCategory(str, Enum):
    STUDY = "study"
    PROJECT = "project"
    HACKATHON = "hackathon"
    SPORTS = "sports"
    SOCIAL = "social"
    OTHER = "other"


class ForumCategory(str, Enum):
    DISCUSSION = "discussion"
    QUESTION = "question"
    CONFESSION = "confession"
    MEME = "meme"


class FeedPhase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class ReactionState:
    like_count: int = 0
    is_liked: bool = False

    def __post_init__(self) -> None:
        if self.like_count < 0:
            object.__setattr__(self, "like_count", 0)

    def toggled(self, liked: bool) -> "ReactionState":
        """State after the acting user moves to ``liked``; a no-op move keeps the count."""
        if liked == self.is_liked:
            return self
        delta = 1 if liked else -1
        return ReactionState(like_count=max(self.like_count + delta, 0), is_liked=liked)


@dataclass(frozen=True)
class PostItem:
    """
    Presentation-ready snapshot shared by every content kind.

    Equality is structural; list diffing in the UI keys on ``id``.
    """

    id: str
    author_id: Optional[str]
    author_name: str
    author_avatar: Optional[str]
    title: str
    created_at: datetime
    time_ago: str
    highlight_type: HighlightType
    image_url: Optional[str]
    price_label: Optional[str]
    like_count: int
    is_liked: bool


@dataclass(frozen=True)
class RentItem(PostItem):
    price: float
    location: str
    city: str
    specs: str
    property_type: PropertyType
    description: str
    amenities: Tuple[str, ...]
    available_date: Optional[date]
    bedrooms: int
    bathrooms: int


@dataclass(frozen=True)
class SecondhandItem(PostItem):
    price: float
    category: ItemCategory
    condition: str
    description: str
    is_negotiable: bool
    is_sold: bool


@dataclass(frozen=True)
class RideItem(PostItem):
    origin: str
    destination: str
    departure_time: datetime
    price: float
    seats: int
    ride_type: RideType
    car_model: str


@dataclass(frozen=True)
class TeamItem(PostItem):
    description: str
    category: TeamCategory
    current_members: int
    max_members: int
    skills: Tuple[str, ...]
    deadline: Optional[datetime]
    is_urgent: bool


@dataclass(frozen=True)
class ForumItem(PostItem):
    content: str
    category: ForumCategory
    is_anonymous: bool
    comment_count: int
    view_count: int
    tags: Tuple[str, ...]
    is_pinned: bool
    image_urls: Tuple[str, ...]


@dataclass(frozen=True)
class CommentItem:
    id: str
    post_id: str
    user_id: str
    parent_id: Optional[str]
    content: str
    is_anonymous: bool
    like_count: int
    created_at: datetime
    time_ago: str
    author_name: str
    author_avatar: Optional[str]


@dataclass(frozen=True)
class FeedState:
    """What the presentation layer observes; replaced wholesale on every change."""

    items: Tuple[PostItem, ...] = field(default_factory=tuple)
    is_loading: bool = False
    error: Optional[str] = None
    phase: FeedPhase = FeedPhase.IDLE
    last_success: Optional[datetime] = None

    def find(self, post_id: str) -> Optional[PostItem]:
        for item in self.items:
            if item.id == post_id:
                return item
        return None
