"""
Startup wiring: one reaction cache shared by one feed service per kind.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional

from feeds.comments import fetch_comments
from feeds.config_loader import load_feeds_config
from feeds.kinds import KINDS, FeedKind, ensure_kind, with_collections
from feeds.models import CommentItem, PostKind
from feeds.reactions import ReactionCache
from feeds.service import Clock, FeedService
from feeds.session import StaticSession, UserSession
from feeds.settings import FeedSettings, load_settings
from feeds.store import PostgrestStore, RemoteStore

logger = logging.getLogger(__name__)


class FeedHub:
    def __init__(
        self,
        store: RemoteStore,
        session: UserSession,
        *,
        kinds: Optional[Mapping[PostKind, FeedKind]] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.store = store
        self.reactions = ReactionCache(store, session)
        self.clock = clock
        self.feeds: Dict[PostKind, FeedService] = {
            kind: FeedService(descriptor, store, self.reactions, clock=clock)
            for kind, descriptor in (kinds or KINDS).items()
        }

    def feed(self, kind: PostKind | str) -> FeedService:
        return self.feeds[ensure_kind(kind)]

    def all(self) -> List[FeedService]:
        return list(self.feeds.values())

    async def fetch_comments(self, post_id: str) -> List[CommentItem]:
        now = self.clock() if self.clock else datetime.now(timezone.utc)
        return await fetch_comments(self.store, post_id, now=now)

    async def aclose(self) -> None:
        for service in self.feeds.values():
            service.detach()
        close = getattr(self.store, "aclose", None)
        if close is not None:
            await close()


def build_feeds(
    settings: Optional[FeedSettings] = None,
    *,
    store: Optional[RemoteStore] = None,
    session: Optional[UserSession] = None,
) -> FeedHub:
    settings = settings or load_settings()
    config = load_feeds_config(settings.config_path)
    kinds = with_collections(config.get("collections") or {})
    if store is None:
        if not settings.store_url or not settings.store_key:
            raise ValueError("FEEDS_STORE_URL and FEEDS_STORE_KEY must be set to reach the backend")
        store = PostgrestStore(
            settings.store_url,
            settings.store_key,
            timeout=settings.timeout_seconds,
            max_retries=settings.max_retries,
        )
    logger.debug("Building feeds for %s", ", ".join(kind.value for kind in kinds))
    return FeedHub(store, session or StaticSession(settings.user_id), kinds=kinds)
