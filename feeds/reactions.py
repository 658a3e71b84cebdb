"""
Process-wide like state shared by every feed.

One instance is built at startup and handed to each ``FeedService``. Entries
appear on the first batch fetch that names them, are overwritten by later
fetches of the same ids and live as long as the cache does.

Toggles for the *same* post must be serialized by the caller (the UI
disables the like control while a toggle is in flight); toggles for
different posts may run concurrently.
"""
from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, Iterable, Optional

from feeds.errors import ConflictError, FeedError
from feeds.models import ReactionState
from feeds.session import UserSession
from feeds.store import RemoteStore

logger = logging.getLogger(__name__)

LIKES_COLLECTION = "likes"
TARGET_TYPE = "post"


class ReactionCache:
    def __init__(self, store: RemoteStore, session: UserSession, *, collection: str = LIKES_COLLECTION) -> None:
        self.store = store
        self.session = session
        self.collection = collection
        self._states: Dict[str, ReactionState] = {}

    def get(self, post_id: str) -> Optional[ReactionState]:
        return self._states.get(post_id)

    def __len__(self) -> int:
        return len(self._states)

    async def fetch_states(self, post_ids: Iterable[str]) -> Dict[str, ReactionState]:
        """
        Refresh the entries for ``post_ids`` with one batched query.

        Returns the whole cache. A failed lookup is logged and leaves the cache
        as it was; callers fall back to zero/unliked for missing ids.
        """
        ids = sorted({str(post_id) for post_id in post_ids})
        if not ids:
            return dict(self._states)

        user_id = await self.session.current_user_id()
        try:
            rows = await self.store.query(
                self.collection,
                filters=[("target_type", "eq", TARGET_TYPE), ("target_id", "in", ids)],
                columns="target_id,user_id",
            )
        except FeedError as exc:
            logger.warning("Failed to fetch like states for %d posts: %s", len(ids), exc)
            return dict(self._states)

        counts = Counter(str(row.get("target_id")) for row in rows)
        liked = {
            str(row.get("target_id"))
            for row in rows
            if user_id is not None and str(row.get("user_id")) == user_id
        }
        # Merge only the requested ids so concurrent fetches for other ids survive.
        for post_id in ids:
            self._states[post_id] = ReactionState(like_count=counts[post_id], is_liked=post_id in liked)
        return dict(self._states)

    async def toggle(self, post_id: str, currently_liked: bool) -> bool:
        """
        Flip the acting user's like on ``post_id`` and return the new flag.

        The entry is updated before the remote call and restored if it fails;
        the failure is re-raised.
        """
        user_id = await self.session.require_user_id()
        target = not currently_liked
        previous = self._states.get(post_id)
        base = previous or ReactionState()
        optimistic = ReactionState(base.like_count, currently_liked).toggled(target)
        self._states[post_id] = optimistic
        try:
            await self.set_liked(user_id, post_id, target)
        except BaseException:
            if self._states.get(post_id) is not optimistic:
                # A batch fetch overwrote the entry meanwhile; keep what it found.
                raise
            if previous is None:
                self._states.pop(post_id, None)
            else:
                self._states[post_id] = previous
            raise
        return target

    async def set_liked(self, user_id: str, post_id: str, liked: bool) -> None:
        """Idempotent remote write: liking twice or unliking twice is harmless."""
        if liked:
            try:
                await self.store.insert(
                    self.collection,
                    {"user_id": user_id, "target_type": TARGET_TYPE, "target_id": post_id},
                )
            except ConflictError:
                logger.debug("Post %s already liked by %s", post_id, user_id)
            return
        await self.store.delete(
            self.collection,
            filters=[
                ("user_id", "eq", user_id),
                ("target_type", "eq", TARGET_TYPE),
                ("target_id", "eq", post_id),
            ],
        )
