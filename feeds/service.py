"""
One feed per content kind: query, enrich with reactions, normalize, publish.

State moves Idle -> Loading -> Ready | Failed and back to Loading on the next
fetch. Only the newest fetch may publish; older ones finishing late are
dropped. Cancelling the newest fetch hands publishing back to an older one
still running, or else restores the last settled phase and error.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from pydantic import ValidationError

from feeds.errors import FeedError, InvalidRecord
from feeds.kinds import IMAGES_COLLECTION, FeedKind
from feeds.models import FEED_ORDER, FeedPhase, FeedState, PostItem
from feeds.reactions import ReactionCache
from feeds.rows import ImageRow, PostImage, RawPost
from feeds.store import RemoteStore
from feeds.toggle import toggle_like

logger = logging.getLogger(__name__)

Subscriber = Callable[[FeedState], None]
Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FeedService:
    def __init__(
        self,
        kind: FeedKind,
        store: RemoteStore,
        reactions: ReactionCache,
        *,
        clock: Optional[Clock] = None,
    ) -> None:
        self.kind = kind
        self.store = store
        self.reactions = reactions
        self.clock = clock or _utcnow
        self.pending_toggles: Set[str] = set()
        self._state = FeedState()
        self._subscribers: List[Subscriber] = []
        self._generation = 0
        self._in_flight: Set[int] = set()
        self._settled: Tuple[Optional[str], FeedPhase] = (None, FeedPhase.IDLE)
        self._task: Optional[asyncio.Task] = None

    @property
    def name(self) -> str:
        return self.kind.name

    @property
    def state(self) -> FeedState:
        return self._state

    @property
    def items(self) -> Sequence[PostItem]:
        return self._state.items

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Call ``callback`` with every new state; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def fetch(self) -> None:
        self._generation += 1
        generation = self._generation
        self._in_flight.add(generation)
        self._publish(is_loading=True, error=None, phase=FeedPhase.LOADING)

        try:
            rows = await self.store.query(self.kind.collection, order=FEED_ORDER)
            items = await self._build_items(rows)
        except asyncio.CancelledError:
            self._in_flight.discard(generation)
            if generation == self._generation:
                self._cancelled(generation)
            raise
        except FeedError as exc:
            self._in_flight.discard(generation)
            if generation != self._generation:
                logger.debug("Ignoring failure of superseded %s fetch #%d: %s", self.name, generation, exc)
                return
            logger.error("Failed to fetch %s posts: %s", self.name, exc)
            self._settle(error=f"Failed to load: {exc}", phase=FeedPhase.FAILED)
            return

        self._in_flight.discard(generation)
        if generation != self._generation:
            logger.debug("Dropping superseded %s fetch #%d (latest #%d)", self.name, generation, self._generation)
            return
        self._settle(items=tuple(items), error=None, phase=FeedPhase.READY, last_success=self.clock())
        logger.info("Fetched %d %s posts", len(items), self.name)

    async def fetch_single(self, post_id: str) -> PostItem:
        """Load one post outside the list; raises ``RecordNotFound`` when it is gone."""
        row = await self.store.query_one(self.kind.collection, filters=[("id", "eq", post_id)])
        items = await self._build_items([row])
        return items[0]

    def start_fetch(self) -> asyncio.Task:
        """Launch a fetch task, cancelling the one still in flight."""
        self.detach()
        self._task = asyncio.get_running_loop().create_task(self.fetch())
        return self._task

    def detach(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def toggle_like(self, post_id: str, currently_liked: bool) -> bool:
        return await toggle_like(self, post_id, currently_liked)

    def is_toggle_pending(self, post_id: str) -> bool:
        return post_id in self.pending_toggles

    def replace_item(self, post_id: str, update: Callable[[PostItem], PostItem]) -> Optional[PostItem]:
        """Swap one entry for ``update(entry)`` in place; returns the entry now listed."""
        items = list(self._state.items)
        for index, item in enumerate(items):
            if item.id != post_id:
                continue
            updated = update(item)
            if updated is not item:
                items[index] = updated
                self._publish(items=tuple(items))
            return updated
        return None

    async def _build_items(self, rows: Sequence[Mapping[str, Any]]) -> List[PostItem]:
        records = [self._parse(row) for row in rows]
        if self.kind.image_lookup:
            records = await self._attach_images(records)
        states = await self.reactions.fetch_states(record.id for record in records)
        now = self.clock()
        return [self.kind.build(record, states.get(record.id), now) for record in records]

    def _parse(self, row: Mapping[str, Any]) -> RawPost:
        try:
            return self.kind.row_model.model_validate(row)
        except ValidationError as exc:
            raise InvalidRecord(
                f"{self.kind.collection} row {row.get('id')!r} has {exc.error_count()} invalid field(s)"
            ) from exc

    async def _attach_images(self, records: List[RawPost]) -> List[RawPost]:
        if not records:
            return records
        rows = await self.store.query(
            IMAGES_COLLECTION,
            filters=[("post_id", "in", [record.id for record in records])],
            order=[("order_index", True)],
            columns="post_id,url,order_index",
        )
        first: Dict[str, str] = {}
        for raw in rows:
            try:
                image = ImageRow.model_validate(raw)
            except ValidationError as exc:
                raise InvalidRecord(f"{IMAGES_COLLECTION} row is malformed: {exc.error_count()} error(s)") from exc
            first.setdefault(image.post_id, image.url)
        return [
            record.model_copy(update={"images": [PostImage(url=first[record.id])]}) if record.id in first else record
            for record in records
        ]

    def _cancelled(self, generation: int) -> None:
        if self._in_flight:
            # An older fetch is still running; it becomes the one allowed to publish.
            self._generation = max(self._in_flight)
            logger.debug("%s fetch #%d cancelled; #%d takes over", self.name, generation, self._generation)
            return
        logger.debug("%s fetch #%d cancelled", self.name, generation)
        error, phase = self._settled
        self._publish(is_loading=False, error=error, phase=phase)

    def _settle(self, **changes) -> None:
        self._settled = (changes.get("error"), changes["phase"])
        self._publish(is_loading=False, **changes)

    def _publish(self, **changes) -> None:
        self._state = replace(self._state, **changes)
        for callback in list(self._subscribers):
            callback(self._state)
