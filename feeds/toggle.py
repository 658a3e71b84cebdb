"""
Optimistic like toggling for feed lists.

Two phases: the list entry is edited locally, the reaction cache performs the
remote write, and on failure the entry is put back from the pre-toggle
snapshot. The like flag/count is the only field ever edited in place on a
view model.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Optional, TypeVar

from feeds.models import PostItem

if TYPE_CHECKING:  # pragma: no cover
    from feeds.service import FeedService

ItemT = TypeVar("ItemT", bound=PostItem)


@dataclass(frozen=True)
class LikeSnapshot:
    post_id: str
    is_liked: bool
    like_count: int

    @classmethod
    def of(cls, item: PostItem) -> "LikeSnapshot":
        return cls(post_id=item.id, is_liked=item.is_liked, like_count=item.like_count)


def apply_like(item: ItemT, liked: bool) -> ItemT:
    if item.is_liked == liked:
        return item
    delta = 1 if liked else -1
    return replace(item, is_liked=liked, like_count=max(item.like_count + delta, 0))


def restore_like(item: ItemT, snapshot: LikeSnapshot) -> ItemT:
    return replace(item, is_liked=snapshot.is_liked, like_count=snapshot.like_count)


async def toggle_like(feed: "FeedService", post_id: str, currently_liked: bool) -> bool:
    """
    Toggle ``post_id`` and mirror the result into ``feed``'s list.

    Returns the new liked flag even when the post is not in the list (e.g. a
    detail screen). Remote failures propagate after the list edit is undone.
    """
    target = not currently_liked
    existing = feed.state.find(post_id)
    snapshot: Optional[LikeSnapshot] = LikeSnapshot.of(existing) if existing is not None else None
    optimistic = feed.replace_item(post_id, lambda item: apply_like(item, target)) if existing is not None else None

    feed.pending_toggles.add(post_id)
    try:
        new_liked = await feed.reactions.toggle(post_id, currently_liked)
    except BaseException:
        if snapshot is not None:
            # A refresh that landed meanwhile already carries server truth.
            feed.replace_item(post_id, lambda item: restore_like(item, snapshot) if item is optimistic else item)
        raise
    finally:
        feed.pending_toggles.discard(post_id)

    return new_liked
