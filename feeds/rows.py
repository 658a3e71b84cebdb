"""
Pydantic shapes for rows returned by the backend views.

Field names are the backend's snake_case columns; mapping to the view models
happens in ``feeds.normalize``.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class PostImage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str
    order_index: Optional[int] = None


class RawPost(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    user_id: str
    created_at: datetime
    user_name: Optional[str] = None
    user_avatar: Optional[str] = None
    highlight_type: Optional[str] = None
    highlight_rank: Optional[int] = None
    hot_score: Optional[float] = None
    images: Optional[List[PostImage]] = None

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value):
        return value if value is None else str(value)


class RentRow(RawPost):
    title: str
    description: Optional[str] = None
    property_type: str = "apartment"
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    price: float
    specs: Optional[str] = None
    location: str = ""
    available_from: Optional[str] = None
    amenities: Optional[List[str]] = None


class SecondhandRow(RawPost):
    title: str
    description: Optional[str] = None
    category: str = "other"
    condition: str = ""
    price: float
    is_negotiable: bool = False
    quantity: Optional[int] = None
    sold_count: Optional[int] = None


class RideRow(RawPost):
    departure_location: str
    destination_location: str
    departure_time: datetime
    available_seats: Optional[int] = None
    price_per_seat: Optional[float] = None
    role: str = "passenger"
    notes: Optional[str] = None


class TeamRow(RawPost):
    title: str
    description: Optional[str] = None
    category: str = "other"
    team_size: Optional[int] = None
    current_members: Optional[int] = None
    skills_needed: Optional[List[str]] = None
    deadline: Optional[str] = None


class ForumRow(RawPost):
    title: str
    description: Optional[str] = None
    category: str = "discussion"
    tags: Optional[List[str]] = None
    is_anonymous: bool = False
    is_pinned: Optional[bool] = None
    like_count: Optional[int] = None
    comment_count: Optional[int] = None
    view_count: Optional[int] = None


class ImageRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    post_id: str
    url: str
    order_index: Optional[int] = None

    @field_validator("post_id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value)


class CommentRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    post_id: str
    user_id: str
    parent_id: Optional[str] = None
    content: str
    is_anonymous: bool = False
    like_count: int = 0
    created_at: datetime

    @field_validator("id", "post_id", "user_id", "parent_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value):
        return value if value is None else str(value)


class ProfileRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    email: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value)
