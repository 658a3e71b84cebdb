"""
Kind descriptors: everything that differs between the five feeds.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Dict, Mapping, Optional, Type

from feeds.models import PostItem, PostKind, ReactionState
from feeds.normalize import normalize_forum, normalize_rent, normalize_ride, normalize_secondhand, normalize_team
from feeds.rows import ForumRow, RawPost, RentRow, RideRow, SecondhandRow, TeamRow

logger = logging.getLogger(__name__)

IMAGES_COLLECTION = "post_images"

Normalizer = Callable[..., PostItem]


@dataclass(frozen=True)
class FeedKind:
    kind: PostKind
    collection: str
    row_model: Type[RawPost]
    normalize: Normalizer
    # Views that do not embed images get their first image from IMAGES_COLLECTION.
    image_lookup: bool = False

    @property
    def name(self) -> str:
        return self.kind.value

    def build(self, row: RawPost, reaction: Optional[ReactionState], now) -> PostItem:
        return self.normalize(row, reaction, now=now)


KINDS: Dict[PostKind, FeedKind] = {
    PostKind.RENT: FeedKind(PostKind.RENT, "rent_posts_view", RentRow, normalize_rent),
    PostKind.SECONDHAND: FeedKind(PostKind.SECONDHAND, "secondhand_posts_view", SecondhandRow, normalize_secondhand),
    PostKind.RIDE: FeedKind(PostKind.RIDE, "ride_posts_view", RideRow, normalize_ride, image_lookup=True),
    PostKind.TEAM: FeedKind(PostKind.TEAM, "team_posts_view", TeamRow, normalize_team, image_lookup=True),
    PostKind.FORUM: FeedKind(PostKind.FORUM, "forum_posts_view", ForumRow, normalize_forum),
}


def ensure_kind(value: PostKind | str) -> PostKind:
    if isinstance(value, PostKind):
        return value
    try:
        return PostKind(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown post kind '{value}'; expected one of {[k.value for k in PostKind]}") from None


def with_collections(overrides: Mapping[str, str]) -> Dict[PostKind, FeedKind]:
    """Copy of ``KINDS`` with backing collections renamed from config."""
    kinds = dict(KINDS)
    for key, collection in (overrides or {}).items():
        try:
            kind = ensure_kind(key)
        except ValueError:
            logger.warning("Ignoring collection override for unknown kind '%s'", key)
            continue
        if not isinstance(collection, str) or not collection.strip():
            logger.warning("Ignoring empty collection override for '%s'", key)
            continue
        kinds[kind] = replace(kinds[kind], collection=collection.strip())
    return kinds
