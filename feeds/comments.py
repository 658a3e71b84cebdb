"""
Forum comment threads with author names resolved from profiles.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import ValidationError

from feeds.errors import InvalidRecord
from feeds.models import CommentItem
from feeds.normalize import ANONYMOUS_AUTHOR
from feeds.rows import CommentRow, ProfileRow
from feeds.store import RemoteStore
from feeds.timefmt import format_time_ago

logger = logging.getLogger(__name__)

COMMENTS_COLLECTION = "comments"
PROFILES_COLLECTION = "profiles"


def author_name(row: CommentRow, profile: Optional[ProfileRow]) -> str:
    if row.is_anonymous:
        return ANONYMOUS_AUTHOR
    if profile and profile.full_name:
        return profile.full_name
    if profile and profile.email:
        local_part = profile.email.split("@")[0]
        if local_part:
            return local_part
    return "User"


async def fetch_comments(store: RemoteStore, post_id: str, *, now: datetime) -> List[CommentItem]:
    raw_rows = await store.query(
        COMMENTS_COLLECTION,
        filters=[("post_id", "eq", post_id)],
        order=[("created_at", True)],
    )
    try:
        rows = [CommentRow.model_validate(raw) for raw in raw_rows]
    except ValidationError as exc:
        raise InvalidRecord(f"{COMMENTS_COLLECTION} for post {post_id!r} are malformed") from exc

    user_ids = sorted({row.user_id for row in rows if not row.is_anonymous})
    profiles: Dict[str, ProfileRow] = {}
    if user_ids:
        raw_profiles = await store.query(
            PROFILES_COLLECTION,
            filters=[("id", "in", user_ids)],
            columns="id,full_name,avatar_url,email",
        )
        try:
            parsed = [ProfileRow.model_validate(raw) for raw in raw_profiles]
        except ValidationError as exc:
            raise InvalidRecord(f"{PROFILES_COLLECTION} rows for post {post_id!r} are malformed") from exc
        profiles = {profile.id: profile for profile in parsed}

    logger.debug("Loaded %d comments for post %s", len(rows), post_id)
    items: List[CommentItem] = []
    for row in rows:
        profile = profiles.get(row.user_id)
        items.append(
            CommentItem(
                id=row.id,
                post_id=row.post_id,
                user_id=row.user_id,
                parent_id=row.parent_id,
                content=row.content,
                is_anonymous=row.is_anonymous,
                like_count=row.like_count,
                created_at=row.created_at,
                time_ago=format_time_ago(row.created_at, now),
                author_name=author_name(row, profile),
                author_avatar=None if row.is_anonymous or profile is None else profile.avatar_url,
            )
        )
    return items
