import unittest
from datetime import date

from bookd.config import IN_MEMORY_DATABASE_URL
from bookd.db import Database
from bookd.services import PerformancesService


class PerformancesServiceTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the query logic.
    """

    def setUp(self):
        self.db = Database(IN_MEMORY_DATABASE_URL)
        self.service = PerformancesService(self.db)

    def tearDown(self):
        self.db.dispose()

    def _create(self, user_id="u1", **data):
        data.setdefault("title", "Spring Recital")
        return self.service.create_past_performance(user_id, data)

    def test_create_returns_fields_and_id(self):
        created = self._create(
            venue="Town Hall", role="Soloist", genre="Classical", ensemble_size=1
        )
        self.assertIsNotNone(created)
        self.assertTrue(created.id)
        self.assertEqual(created.user_id, "u1")
        self.assertEqual(created.venue, "Town Hall")
        self.assertIsNotNone(created.created_at)

        fetched = self.service.get_past_performance(created.id)
        self.assertEqual(fetched.title, "Spring Recital")

    def test_create_ignores_protected_fields(self):
        created = self._create(id="forced", user_id="someone-else")
        self.assertNotEqual(created.id, "forced")
        self.assertEqual(created.user_id, "u1")

    def test_list_is_scoped_and_newest_first(self):
        self._create(title="Old", performance_date=date(2021, 5, 1))
        self._create(title="New", performance_date=date(2023, 5, 1))
        self._create(title="Undated")
        self._create(user_id="u2", title="Other user")

        titles = [p.title for p in self.service.get_past_performances("u1")]
        self.assertEqual(titles, ["New", "Old", "Undated"])

    def test_update_changes_only_supplied_fields(self):
        created = self._create(venue="Club", genre="Jazz")
        updated = self.service.update_past_performance(
            created.id, {"venue": "Arena", "user_id": "u2", "created_at": None}
        )
        self.assertEqual(updated.venue, "Arena")
        self.assertEqual(updated.genre, "Jazz")
        self.assertEqual(updated.user_id, "u1")
        self.assertEqual(updated.created_at, created.created_at)
        self.assertGreaterEqual(updated.updated_at, created.updated_at)

    def test_update_and_delete_respect_owner(self):
        created = self._create()
        self.assertIsNone(
            self.service.update_past_performance(created.id, {"venue": "X"}, user_id="u2")
        )
        self.assertFalse(self.service.delete_past_performance(created.id, user_id="u2"))
        self.assertTrue(self.service.delete_past_performance(created.id, user_id="u1"))
        self.assertIsNone(self.service.get_past_performance(created.id))
        self.assertFalse(self.service.delete_past_performance(created.id))

    def test_paginated_total_counts_all_rows(self):
        for i in range(5):
            self._create(title=f"Gig {i}", performance_date=date(2022, 1, i + 1))
        page = self.service.get_past_performances_paginated("u1", limit=2, offset=2)
        self.assertEqual(page.total, 5)
        self.assertEqual(len(page.items), 2)
        self.assertEqual([p.title for p in page.items], ["Gig 2", "Gig 1"])

    def test_search_is_case_insensitive_over_fixed_fields(self):
        self._create(title="Jazz Night", venue="Blue Note")
        self._create(title="Opera", role="Lead JAZZ singer")
        self._create(title="Folk", description="jazz in description only")

        found = {p.title for p in self.service.search_past_performances("u1", "jazz")}
        self.assertEqual(found, {"Jazz Night", "Opera"})

    def test_search_escapes_wildcards(self):
        self._create(title="100% Live")
        self._create(title="Live at 100 Club")
        found = [p.title for p in self.service.search_past_performances("u1", "100%")]
        self.assertEqual(found, ["100% Live"])

    def test_filters_by_genre_and_date_range(self):
        self._create(title="A", genre="Rock", performance_date=date(2022, 3, 1))
        self._create(title="B", genre="Jazz", performance_date=date(2022, 6, 1))
        self._create(title="C", genre="Rock", performance_date=date(2023, 1, 1))

        rock = [p.title for p in self.service.get_past_performances_by_genre("u1", "Rock")]
        self.assertEqual(rock, ["C", "A"])

        in_range = self.service.get_past_performances_by_date_range(
            "u1", date(2022, 3, 1), date(2022, 6, 1)
        )
        self.assertEqual({p.title for p in in_range}, {"A", "B"})

    def test_recent_performances_across_users(self):
        self._create(user_id="u1", title="A", genre="Rock", performance_date=date(2022, 3, 1))
        self._create(user_id="u2", title="B", genre="Rock", performance_date=date(2023, 3, 1))
        self._create(user_id="u3", title="C", genre="Jazz", performance_date=date(2024, 3, 1))

        recent = self.service.get_recent_performances(genre="Rock")
        self.assertEqual([p.title for p in recent], ["B", "A"])

        bounded = self.service.get_recent_performances(
            start_date=date(2023, 3, 1), end_date=date(2024, 3, 1), limit=1
        )
        self.assertEqual([p.title for p in bounded], ["C"])

    def test_stats(self):
        self._create(genre="Rock", venue="Hall", performance_date=date(2022, 1, 1))
        self._create(genre="Rock", venue="Hall", performance_date=date(2023, 1, 1))
        self._create(genre="Jazz", venue="Club", performance_date=date(2023, 2, 1))
        self._create()

        stats = self.service.get_performance_stats("u1")
        self.assertEqual(stats.total_performances, 4)
        self.assertEqual(stats.genre_breakdown, {"Rock": 2, "Jazz": 1})
        self.assertEqual(stats.yearly_stats, {"2022": 1, "2023": 2})
        self.assertEqual(stats.venue_count, 2)

    def test_stats_for_user_without_performances(self):
        stats = self.service.get_performance_stats("nobody")
        self.assertEqual(stats.total_performances, 0)
        self.assertEqual(stats.genre_breakdown, {})


if __name__ == "__main__":
    unittest.main()
