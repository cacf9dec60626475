import unittest
from datetime import date
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from bookd.config import IN_MEMORY_DATABASE_URL
from bookd.db import Database
from bookd.services import ExperienceService, ServiceError


class ExperienceServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = Database(IN_MEMORY_DATABASE_URL)
        self.service = ExperienceService(self.db)

    def tearDown(self):
        self.db.dispose()

    def _create(self, user_id="u1", title="Principal Cello", **data):
        data.setdefault("organization", "City Orchestra")
        return self.service.create_experience_entry(user_id, dict(data, title=title))

    def _orders(self, user_id="u1"):
        return [(e.title, e.display_order) for e in self.service.get_experience_entries(user_id)]

    def test_create_appends_display_order(self):
        first = self._create(title="A")
        second = self._create(title="B")
        other = self._create(user_id="u2", title="C")
        self.assertEqual(first.display_order, 1)
        self.assertEqual(second.display_order, 2)
        self.assertEqual(other.display_order, 1)

    def test_create_ignores_requested_display_order(self):
        entry = self._create(display_order=42)
        self.assertEqual(entry.display_order, 1)

    def test_create_raises_on_database_error(self):
        with patch.object(
            self.db, "Session", side_effect=OperationalError("insert", {}, Exception("down"))
        ):
            with self.assertRaises(ServiceError) as ctx:
                self._create()
        self.assertIn("Database error", str(ctx.exception))

    def test_entries_ordered_by_display_order(self):
        self._create(title="A", start_date=date(2019, 1, 1))
        self._create(title="B", start_date=date(2021, 1, 1))
        self.assertEqual(self._orders(), [("A", 1), ("B", 2)])

    def test_delete_renumbers_remaining_entries(self):
        a = self._create(title="A")
        b = self._create(title="B")
        self._create(title="C")

        self.assertTrue(self.service.delete_experience_entry(b.id, user_id="u1"))
        self.assertEqual(self._orders(), [("A", 1), ("C", 2)])

        self.assertTrue(self.service.delete_experience_entry(a.id))
        self.assertEqual(self._orders(), [("C", 1)])

    def test_delete_foreign_or_missing_entry(self):
        entry = self._create()
        self.assertFalse(self.service.delete_experience_entry(entry.id, user_id="u2"))
        self.assertFalse(self.service.delete_experience_entry("missing"))
        self.assertIsNotNone(self.service.get_experience_entry(entry.id))

    def test_reorder_only_touches_own_entries(self):
        a = self._create(title="A")
        b = self._create(title="B")
        c = self._create(title="C")
        foreign = self._create(user_id="u2", title="Z")

        self.assertTrue(
            self.service.reorder_experience_entries("u1", [c.id, foreign.id, a.id, b.id])
        )
        self.assertEqual(self._orders(), [("C", 1), ("A", 3), ("B", 4)])
        self.assertEqual(self._orders("u2"), [("Z", 1)])

    def test_update_respects_owner_and_protected_fields(self):
        entry = self._create()
        self.assertIsNone(
            self.service.update_experience_entry(entry.id, {"title": "X"}, user_id="u2")
        )
        updated = self.service.update_experience_entry(
            entry.id, {"title": "Section Leader", "id": "other"}, user_id="u1"
        )
        self.assertEqual(updated.id, entry.id)
        self.assertEqual(updated.title, "Section Leader")
        self.assertEqual(updated.organization, "City Orchestra")

    def test_update_checks_dates_against_stored_start(self):
        entry = self._create(start_date=date(2020, 1, 1))
        with self.assertRaises(ValueError):
            self.service.update_experience_entry(
                entry.id, {"end_date": date(2019, 12, 31)}, user_id="u1"
            )
        self.assertIsNone(self.service.get_experience_entry(entry.id).end_date)

        updated = self.service.update_experience_entry(
            entry.id, {"end_date": date(2020, 1, 1)}, user_id="u1"
        )
        self.assertEqual(updated.end_date, date(2020, 1, 1))

    def test_toggle_current_clears_end_date(self):
        entry = self._create(start_date=date(2020, 1, 1), end_date=date(2021, 1, 1))
        toggled = self.service.toggle_current_status(entry.id, user_id="u1")
        self.assertTrue(toggled.is_current)
        self.assertIsNone(toggled.end_date)

        toggled_back = self.service.toggle_current_status(entry.id)
        self.assertFalse(toggled_back.is_current)
        self.assertIsNone(self.service.toggle_current_status(entry.id, user_id="u2"))

    def test_paginated_and_search(self):
        self._create(title="Violinist", organization="Chamber Group")
        self._create(title="Instructor", organization="Music School")
        self._create(title="Session Player", organization="Studio")

        page = self.service.get_experience_entries_paginated("u1", limit=2, offset=0)
        self.assertEqual(page.total, 3)
        self.assertEqual([e.title for e in page.items], ["Violinist", "Instructor"])

        found = self.service.search_experience_entries("u1", "SCHOOL")
        self.assertEqual([e.title for e in found], ["Instructor"])

    def test_missing_table_yields_empty_list(self):
        with self.db.engine.begin() as conn:
            conn.exec_driver_sql("DROP TABLE experience_entries")
        self.assertEqual(self.service.get_experience_entries("u1"), [])


if __name__ == "__main__":
    unittest.main()
