import unittest
from datetime import timedelta

from feeds.models import (
    ForumCategory,
    HighlightType,
    ItemCategory,
    PropertyType,
    ReactionState,
    RideType,
    TeamCategory,
)
from feeds.normalize import (
    city_name,
    is_sold_out,
    normalize_forum,
    normalize_rent,
    normalize_ride,
    normalize_secondhand,
    normalize_team,
)
from feeds.rows import ForumRow, RentRow, RideRow, SecondhandRow, TeamRow
from feeds.tests.support import NOW, forum_row, rent_row, ride_row, secondhand_row, team_row
from feeds.timefmt import format_time_ago, parse_date


class SecondhandNormalizerTests(unittest.TestCase):
    def _item(self, reaction=None, **extra):
        row = SecondhandRow.model_validate(secondhand_row("s1", **extra))
        return normalize_secondhand(row, reaction, now=NOW)

    def test_sold_when_quantity_exhausted(self):
        self.assertTrue(self._item(quantity=3, sold_count=3).is_sold)
        self.assertFalse(self._item(quantity=3, sold_count=2).is_sold)

    def test_missing_quantity_and_sold_count_default_to_available(self):
        self.assertFalse(self._item().is_sold)
        self.assertFalse(is_sold_out(None, None))
        self.assertTrue(is_sold_out(None, 1))

    def test_unknown_category_falls_back_to_other(self):
        item = self._item(category="vintage")
        self.assertEqual(item.category, ItemCategory.OTHER)
        self.assertEqual(self._item(category="Textbooks").category, ItemCategory.BOOKS)

    def test_missing_reaction_defaults_to_zero_unliked(self):
        item = self._item()
        self.assertEqual(item.like_count, 0)
        self.assertFalse(item.is_liked)

    def test_reaction_fields_are_copied(self):
        item = self._item(ReactionState(like_count=7, is_liked=True))
        self.assertEqual((item.like_count, item.is_liked), (7, True))

    def test_plain_price_label_and_unknown_highlight(self):
        item = self._item(price=1234.0, highlight_type="SPARKLY")
        self.assertEqual(item.price_label, "$1,234")
        self.assertEqual(item.highlight_type, HighlightType.NORMAL)
        self.assertEqual(self._item(highlight_type="Pinned").highlight_type, HighlightType.PINNED)


class RentNormalizerTests(unittest.TestCase):
    def test_monthly_label_specs_and_city(self):
        row = RentRow.model_validate(rent_row("r1", bedrooms=2, bathrooms=1.6, images=[{"url": "https://img/1"}]))
        item = normalize_rent(row, None, now=NOW)
        self.assertEqual(item.price_label, "$1,200/mo")
        self.assertEqual(item.specs, "2 Bed • 2 Bath")
        self.assertEqual(item.city, "Irvine")
        self.assertEqual(item.property_type, PropertyType.ROOM)
        self.assertEqual(item.image_url, "https://img/1")

    def test_unknown_property_type_and_date_only_availability(self):
        row = RentRow.model_validate(rent_row("r2", property_type="castle", available_from="2026-11-01", specs="Loft"))
        item = normalize_rent(row, None, now=NOW)
        self.assertEqual(item.property_type, PropertyType.APARTMENT)
        self.assertEqual(item.specs, "Loft")
        self.assertEqual(item.available_date.isoformat(), "2026-11-01")

    def test_city_name_uses_last_component(self):
        self.assertEqual(city_name("1 Loop Rd , Irvine , CA"), "CA")
        self.assertEqual(city_name("  Irvine "), "Irvine")


class RideNormalizerTests(unittest.TestCase):
    def test_per_seat_label_and_role(self):
        item = normalize_ride(RideRow.model_validate(ride_row("d1")), None, now=NOW)
        self.assertEqual(item.price_label, "$25/seat")
        self.assertEqual(item.ride_type, RideType.OFFERING)
        self.assertEqual(item.seats, 3)

    def test_passenger_with_missing_price(self):
        row = RideRow.model_validate(ride_row("d2", role="passenger", price_per_seat=None, available_seats=-2))
        item = normalize_ride(row, None, now=NOW)
        self.assertEqual(item.ride_type, RideType.LOOKING)
        self.assertEqual(item.price_label, "$0/seat")
        self.assertEqual(item.seats, 0)


class TeamNormalizerTests(unittest.TestCase):
    def test_urgent_when_deadline_within_a_week(self):
        soon = (NOW + timedelta(days=3)).isoformat()
        later = (NOW + timedelta(days=10)).date().isoformat()
        urgent = normalize_team(TeamRow.model_validate(team_row("t1", deadline=soon)), None, now=NOW)
        relaxed = normalize_team(TeamRow.model_validate(team_row("t2", deadline=later)), None, now=NOW)
        self.assertTrue(urgent.is_urgent)
        self.assertFalse(relaxed.is_urgent)
        self.assertIsNone(urgent.price_label)

    def test_member_counts_and_categories(self):
        row = TeamRow.model_validate(team_row("t3", team_size=1, current_members=3, category="course"))
        item = normalize_team(row, None, now=NOW)
        self.assertEqual((item.current_members, item.max_members), (3, 3))
        self.assertEqual(item.category, TeamCategory.PROJECT)
        unknown = normalize_team(TeamRow.model_validate(team_row("t4", category="vintage")), None, now=NOW)
        self.assertEqual(unknown.category, TeamCategory.OTHER)


class ForumNormalizerTests(unittest.TestCase):
    def test_anonymous_post_hides_author(self):
        row = ForumRow.model_validate(forum_row("f1", is_anonymous=True, user_avatar="https://a/1"))
        item = normalize_forum(row, None, now=NOW)
        self.assertIsNone(item.author_id)
        self.assertIsNone(item.author_avatar)
        self.assertEqual(item.author_name, "Anonymous")

    def test_meme_tag_overrides_category(self):
        row = ForumRow.model_validate(forum_row("f2", tags=["Dank MEMES"], category="question"))
        self.assertEqual(normalize_forum(row, None, now=NOW).category, ForumCategory.MEME)
        plain = ForumRow.model_validate(forum_row("f3", category="rant"))
        self.assertEqual(normalize_forum(plain, None, now=NOW).category, ForumCategory.CONFESSION)

    def test_missing_reaction_ignores_denormalised_like_count(self):
        row = ForumRow.model_validate(forum_row("f4", like_count=12, images=[{"url": "a"}, {"url": "b"}]))
        item = normalize_forum(row, None, now=NOW)
        self.assertEqual(item.like_count, 0)
        self.assertEqual(item.image_urls, ("a", "b"))


class TimeFormattingTests(unittest.TestCase):
    def test_relative_buckets(self):
        self.assertEqual(format_time_ago(NOW - timedelta(seconds=30), NOW), "just now")
        self.assertEqual(format_time_ago(NOW - timedelta(minutes=5), NOW), "5m ago")
        self.assertEqual(format_time_ago(NOW - timedelta(hours=3), NOW), "3h ago")
        self.assertEqual(format_time_ago(NOW - timedelta(days=2), NOW), "2d ago")

    def test_parse_date_accepts_zulu_and_rejects_garbage(self):
        self.assertEqual(parse_date("2026-10-19T12:00:00Z"), NOW)
        self.assertIsNone(parse_date("soon"))
        self.assertIsNone(parse_date(None))


if __name__ == "__main__":
    unittest.main()
