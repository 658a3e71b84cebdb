import asyncio
import unittest
from typing import Any, List, Mapping

from feeds.errors import AuthRequired, StoreError
from feeds.models import ReactionState
from feeds.normalize import normalize_secondhand
from feeds.rows import SecondhandRow
from feeds.store import MemoryStore
from feeds.tests.support import ME, clock, likes, make_hub, make_store, secondhand_row, settle
from feeds.toggle import LikeSnapshot, apply_like, restore_like


class BlockingInsertStore(MemoryStore):
    """Parks like inserts until ``release`` is set; the outcome is chosen by the test."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.release = asyncio.Event()
        self.insert_error = None

    async def insert(self, collection: str, row: Mapping[str, Any]) -> None:
        await self.release.wait()
        if self.insert_error is not None:
            raise self.insert_error
        await super().insert(collection, row)


def _item(post_id: str = "s1", **reaction):
    row = SecondhandRow.model_validate(secondhand_row(post_id))
    return normalize_secondhand(row, ReactionState(**reaction) if reaction else None, now=clock())


class LikeEditTests(unittest.TestCase):
    def test_apply_and_restore(self):
        item = _item(like_count=4)
        snapshot = LikeSnapshot.of(item)

        liked = apply_like(item, True)
        self.assertEqual((liked.like_count, liked.is_liked), (5, True))
        self.assertEqual(liked.title, item.title)
        self.assertEqual(restore_like(liked, snapshot), item)

    def test_apply_same_flag_returns_same_object(self):
        item = _item(like_count=1, is_liked=True)
        self.assertIs(apply_like(item, True), item)

    def test_unlike_never_goes_negative(self):
        item = _item(like_count=0, is_liked=True)
        self.assertEqual(apply_like(item, False).like_count, 0)


class FeedToggleTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.store = make_store(
            secondhand_posts_view=[secondhand_row("s1"), secondhand_row("s2", rank=2)],
            likes=likes("s1", ["x"]),
        )
        self.hub = make_hub(self.store)
        self.feed = self.hub.feed("secondhand")
        await self.feed.fetch()

    async def test_like_updates_list_and_cache(self):
        liked = await self.feed.toggle_like("s1", currently_liked=False)

        self.assertTrue(liked)
        item = self.feed.state.find("s1")
        self.assertEqual((item.like_count, item.is_liked), (2, True))
        self.assertEqual(self.hub.reactions.get("s1"), ReactionState(like_count=2, is_liked=True))
        self.assertFalse(self.feed.is_toggle_pending("s1"))

    async def test_like_then_unlike_restores_original(self):
        original = self.feed.state.find("s1")
        await self.feed.toggle_like("s1", currently_liked=False)
        await self.feed.toggle_like("s1", currently_liked=True)
        self.assertEqual(self.feed.state.find("s1"), original)

    async def test_only_the_target_entry_changes(self):
        other = self.feed.state.find("s2")
        await self.feed.toggle_like("s1", currently_liked=False)
        self.assertIs(self.feed.state.find("s2"), other)

    async def test_failure_rolls_back_and_propagates(self):
        original = self.feed.state.find("s1")
        seen = []
        self.feed.subscribe(lambda state: seen.append(state.find("s1").like_count))
        self.store.fail_next("likes", StoreError("write refused"))

        with self.assertRaises(StoreError):
            await self.feed.toggle_like("s1", currently_liked=False)

        self.assertEqual(seen, [2, 1])
        self.assertEqual(self.feed.state.find("s1"), original)
        self.assertEqual(self.hub.reactions.get("s1"), ReactionState(like_count=1))
        self.assertFalse(self.feed.is_toggle_pending("s1"))

    async def test_signed_out_user_cannot_toggle(self):
        hub = make_hub(self.store, user_id=None)
        feed = hub.feed("secondhand")
        await feed.fetch()
        original = feed.state.find("s1")

        with self.assertRaises(AuthRequired):
            await feed.toggle_like("s1", currently_liked=False)
        self.assertEqual(feed.state.find("s1"), original)

    async def test_post_outside_list_still_toggles(self):
        liked = await self.feed.toggle_like("detail-only", currently_liked=False)
        self.assertTrue(liked)
        self.assertIsNone(self.feed.state.find("detail-only"))
        self.assertIn(
            {"user_id": ME, "target_type": "post", "target_id": "detail-only"},
            self.store.tables["likes"],
        )


class ToggleDuringRefreshTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.store = BlockingInsertStore(
            {"secondhand_posts_view": [secondhand_row("s1")], "likes": likes("s1", ["x"])},
            unique={"likes": ("user_id", "target_type", "target_id")},
        )
        self.hub = make_hub(self.store)
        self.feed = self.hub.feed("secondhand")
        await self.feed.fetch()

    async def test_pending_flag_while_in_flight(self):
        toggle = asyncio.create_task(self.feed.toggle_like("s1", currently_liked=False))
        await settle()
        self.assertTrue(self.feed.is_toggle_pending("s1"))
        self.assertEqual(self.feed.state.find("s1").like_count, 2)

        self.store.release.set()
        await toggle
        self.assertFalse(self.feed.is_toggle_pending("s1"))

    async def test_rollback_does_not_clobber_newer_refresh(self):
        toggle = asyncio.create_task(self.feed.toggle_like("s1", currently_liked=False))
        await settle()

        # Someone else liked the post meanwhile; the refresh brings server truth.
        self.store.tables["likes"].extend(likes("s1", ["y"]))
        await self.feed.fetch()
        refreshed = self.feed.state.find("s1")

        self.store.insert_error = StoreError("write refused")
        self.store.release.set()
        with self.assertRaises(StoreError):
            await toggle

        self.assertIs(self.feed.state.find("s1"), refreshed)
        self.assertEqual(refreshed.like_count, 2)
        self.assertEqual(self.hub.reactions.get("s1"), ReactionState(like_count=2, is_liked=False))

    async def test_toggles_for_different_posts_run_concurrently(self):
        self.store.tables["secondhand_posts_view"].append(secondhand_row("s2", rank=2))
        await self.feed.fetch()

        first = asyncio.create_task(self.feed.toggle_like("s1", currently_liked=False))
        second = asyncio.create_task(self.feed.toggle_like("s2", currently_liked=False))
        await settle()
        self.assertEqual(self.feed.pending_toggles, {"s1", "s2"})

        self.store.release.set()
        results: List[bool] = await asyncio.gather(first, second)

        self.assertEqual(results, [True, True])
        self.assertEqual(self.feed.state.find("s1").like_count, 2)
        self.assertEqual(self.feed.state.find("s2").like_count, 1)


if __name__ == "__main__":
    unittest.main()
