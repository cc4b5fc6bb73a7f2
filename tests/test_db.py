"""Unit tests for the DB layer — database core, models and the two tables.

Every test uses a fresh temporary SQLite file so tests are isolated and
fast.
"""

from __future__ import annotations

import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

from browserdb.db.database import Database
from browserdb.db.history_table import HistoryTable
from browserdb.db.joined_history_visits import JoinedHistoryVisitsTable
from browserdb.db.schema import SCHEMA_VERSION
from browserdb.db.visits_table import VisitsTable
from browserdb.errors import ConstraintError, InvalidArgumentError, StorageError
from browserdb.models import QueryOptions, QuerySort, Site, Visit, VisitType
from browserdb.models.visit import from_micros, to_micros


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_db() -> Database:
    """Return a Database backed by a fresh temporary file."""
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    db = Database(path=Path(tmp.name))
    db.init()
    return db


def _count(db: Database, table: str) -> int:
    return db.fetchone(f"SELECT COUNT(*) AS n FROM {table}")["n"]


def _at(day: int, hour: int = 12) -> datetime:
    return datetime(2026, 1, day, hour, 0, 0, 250000, tzinfo=timezone.utc)


class _HistoryV2(HistoryTable):
    migrations = {2: ("ALTER TABLE history ADD COLUMN favicon TEXT",)}


# ===========================================================================
# 1. Database core
# ===========================================================================

class TestDatabaseCore(unittest.TestCase):
    def setUp(self):
        self.db = _make_db()

    def tearDown(self):
        self.db.close()

    def test_version_registry_created(self):
        tables = self.db.fetchall("SELECT name FROM sqlite_master WHERE type='table'")
        self.assertIn("table_versions", {t["name"] for t in tables})

    def test_transaction_commit(self):
        with self.db.transaction() as conn:
            conn.execute("INSERT INTO table_versions (name, version) VALUES (?, ?)", ("t", 1))
        self.assertEqual(self.db.table_version("t"), 1)

    def test_transaction_rollback(self):
        try:
            with self.db.transaction() as conn:
                conn.execute("INSERT INTO table_versions (name, version) VALUES (?, ?)", ("t", 1))
                raise ValueError("Force rollback")
        except ValueError:
            pass
        self.assertIsNone(self.db.table_version("t"))

    def test_nested_transaction_rolls_back_inner_block_only(self):
        with self.db.transaction() as conn:
            conn.execute("INSERT INTO table_versions (name, version) VALUES (?, ?)", ("outer", 1))
            try:
                with self.db.transaction() as inner:
                    self.assertTrue(self.db.in_transaction)
                    inner.execute(
                        "INSERT INTO table_versions (name, version) VALUES (?, ?)", ("inner", 1)
                    )
                    raise ValueError("Force inner rollback")
            except ValueError:
                pass
        self.assertFalse(self.db.in_transaction)
        self.assertEqual(self.db.table_version("outer"), 1)
        self.assertIsNone(self.db.table_version("inner"))

    def test_ensure_table_creates_both_tables(self):
        self.assertTrue(self.db.ensure_table(JoinedHistoryVisitsTable()))
        tables = {
            t["name"] for t in self.db.fetchall("SELECT name FROM sqlite_master WHERE type='table'")
        }
        self.assertTrue({"history", "visits"}.issubset(tables))
        self.assertEqual(self.db.table_version("history-visits"), SCHEMA_VERSION)

    def test_ensure_table_is_idempotent(self):
        store = JoinedHistoryVisitsTable()
        self.assertTrue(self.db.ensure_table(store))
        self.assertTrue(self.db.ensure_table(store))

    def test_ensure_table_upgrades(self):
        self.assertTrue(self.db.ensure_table(HistoryTable(), 1))
        self.assertTrue(self.db.ensure_table(_HistoryV2(), 2))
        self.assertEqual(self.db.table_version("history"), 2)
        columns = {c["name"] for c in self.db.fetchall("PRAGMA table_info(history)")}
        self.assertIn("favicon", columns)

    def test_ensure_table_refuses_downgrade(self):
        self.db.ensure_table(_HistoryV2(), 2)
        self.assertFalse(self.db.ensure_table(HistoryTable(), 1))
        self.assertIsInstance(self.db.last_error, StorageError)

    def test_execute_query_failure_gives_failed_cursor(self):
        cursor = self.db.execute_query("SELECT * FROM missing_table", dict)
        self.assertFalse(cursor.ok)
        self.assertEqual(cursor.count, 0)
        self.assertIsInstance(self.db.last_error, StorageError)

    def test_in_memory_database(self):
        db = Database(":memory:")
        db.init()
        self.assertTrue(db.in_memory)
        self.assertTrue(db.ensure_table(JoinedHistoryVisitsTable()))
        db.close()


# ===========================================================================
# 2. Models
# ===========================================================================

class TestModels(unittest.TestCase):
    def test_site_from_row_with_nulls(self):
        site = Site.from_row({"id": None, "guid": None, "url": "https://a.com", "title": "A"})
        self.assertIsNone(site.id)
        self.assertIsNone(site.guid)
        self.assertEqual(site.url, "https://a.com")

    def test_guid_generated_once(self):
        site = Site(url="https://a.com")
        first = site.ensure_guid()
        self.assertTrue(first)
        self.assertEqual(site.ensure_guid(), first)

    def test_guid_kept_when_set(self):
        site = Site(url="https://a.com", guid="fixed-guid")
        self.assertEqual(site.ensure_guid(), "fixed-guid")

    def test_micros_are_lossless(self):
        when = datetime(2026, 3, 1, 8, 15, 42, 987654, tzinfo=timezone.utc)
        self.assertEqual(from_micros(to_micros(when)), when)

    def test_naive_datetime_taken_as_utc(self):
        naive = datetime(2026, 3, 1, 8, 15, 42)
        aware = naive.replace(tzinfo=timezone.utc)
        self.assertEqual(to_micros(naive), to_micros(aware))

    def test_query_options_defaults(self):
        options = QueryOptions()
        self.assertIsNone(options.filter)
        self.assertEqual(options.sort, QuerySort.NONE)

    def test_visit_defaults(self):
        visit = Visit(site=Site(url="https://a.com"))
        self.assertEqual(visit.type, VisitType.UNKNOWN)
        self.assertIsNotNone(visit.date.tzinfo)
        self.assertIsNone(visit.id)


# ===========================================================================
# 3. History (site) table
# ===========================================================================

class TestHistoryTable(unittest.TestCase):
    def setUp(self):
        self.db = _make_db()
        self.table = HistoryTable()
        self.db.ensure_table(self.table)

    def tearDown(self):
        self.db.close()

    def test_insert_assigns_guid_and_id(self):
        site = Site(url="https://example.com", title="Example")
        row_id = self.table.insert(self.db, site)
        self.assertGreater(row_id, 0)
        self.assertTrue(site.guid)
        stored = self.table.get_by_url(self.db, "https://example.com")
        self.assertEqual(stored.id, row_id)
        self.assertEqual(stored.guid, site.guid)

    def test_insert_keeps_caller_guid(self):
        self.table.insert(self.db, Site(url="https://example.com", guid="my-guid"))
        self.assertEqual(self.table.get_by_url(self.db, "https://example.com").guid, "my-guid")

    def test_duplicate_url_fails(self):
        self.table.insert(self.db, Site(url="https://example.com", title="One"))
        result = self.table.insert(self.db, Site(url="https://example.com", title="Two"))
        self.assertEqual(result, -1)
        self.assertIsInstance(self.db.last_error, ConstraintError)
        self.assertEqual(_count(self.db, "history"), 1)

    def test_duplicate_guid_fails(self):
        self.table.insert(self.db, Site(url="https://a.com", guid="same"))
        self.assertEqual(self.table.insert(self.db, Site(url="https://b.com", guid="same")), -1)
        self.assertIsInstance(self.db.last_error, ConstraintError)

    def test_success_clears_previous_error(self):
        self.table.insert(self.db, Site(url="https://a.com"))
        self.table.insert(self.db, Site(url="https://a.com"))
        self.assertIsNotNone(self.db.last_error)
        self.table.insert(self.db, Site(url="https://b.com"))
        self.assertIsNone(self.db.last_error)

    def test_update_changes_title_only(self):
        site = Site(url="https://example.com", title="Old")
        self.table.insert(self.db, site)
        changed = Site(url="https://example.com", title="New", guid="ignored")
        self.assertEqual(self.table.update(self.db, changed), 1)
        stored = self.table.get_by_url(self.db, "https://example.com")
        self.assertEqual(stored.title, "New")
        self.assertEqual(stored.guid, site.guid)

    def test_update_unknown_url(self):
        self.assertEqual(self.table.update(self.db, Site(url="https://nowhere.com")), 0)

    def test_delete_by_url(self):
        self.table.insert(self.db, Site(url="https://a.com"))
        self.table.insert(self.db, Site(url="https://b.com"))
        self.assertEqual(self.table.delete(self.db, Site(url="https://a.com")), 1)
        self.assertIsNone(self.table.get_by_url(self.db, "https://a.com"))
        self.assertIsNotNone(self.table.get_by_url(self.db, "https://b.com"))

    def test_delete_all(self):
        self.table.insert(self.db, Site(url="https://a.com"))
        self.table.insert(self.db, Site(url="https://b.com"))
        self.assertEqual(self.table.delete(self.db, None), 2)
        self.assertEqual(_count(self.db, "history"), 0)

    def test_query_filter_is_substring(self):
        for url in ("https://example.com/page", "https://other.com", "https://not-example-dot.org"):
            self.table.insert(self.db, Site(url=url))
        cursor = self.table.query(self.db, QueryOptions(filter="example"))
        self.assertTrue(cursor.ok)
        self.assertEqual(
            {s.url for s in cursor},
            {"https://example.com/page", "https://not-example-dot.org"},
        )

    def test_query_filter_is_case_sensitive(self):
        self.table.insert(self.db, Site(url="https://example.com"))
        self.assertEqual(self.table.query(self.db, QueryOptions(filter="EXAMPLE")).count, 0)

    def test_query_filter_has_no_wildcards(self):
        self.table.insert(self.db, Site(url="https://a.com/100%"))
        self.table.insert(self.db, Site(url="https://b.com/a_b"))
        self.table.insert(self.db, Site(url="https://c.com/axb"))
        self.assertEqual([s.url for s in self.table.query(self.db, QueryOptions(filter="%"))],
                         ["https://a.com/100%"])
        self.assertEqual([s.url for s in self.table.query(self.db, QueryOptions(filter="a_b"))],
                         ["https://b.com/a_b"])

    def test_query_without_options_returns_all(self):
        self.table.insert(self.db, Site(url="https://a.com"))
        self.table.insert(self.db, Site(url="https://b.com"))
        self.assertEqual(self.table.query(self.db).count, 2)

    def test_get_by_url_is_exact(self):
        self.table.insert(self.db, Site(url="https://example.com/page"))
        self.assertIsNone(self.table.get_by_url(self.db, "https://example.com"))
        self.assertIsNotNone(self.table.get_by_url(self.db, "https://example.com/page"))

    def test_get_by_id(self):
        site_id = self.table.insert(self.db, Site(url="https://a.com", title="A"))
        self.assertEqual(self.table.get_by_id(self.db, site_id).title, "A")
        self.assertIsNone(self.table.get_by_id(self.db, site_id + 100))


# ===========================================================================
# 4. Visits table
# ===========================================================================

class TestVisitsTable(unittest.TestCase):
    def setUp(self):
        self.db = _make_db()
        self.db.ensure_table(JoinedHistoryVisitsTable())
        self.history = HistoryTable()
        self.visits = VisitsTable()
        self.site = Site(url="https://example.com", title="Example")
        self.site.id = self.history.insert(self.db, self.site)
        self.other = Site(url="https://other.com", title="Other")
        self.other.id = self.history.insert(self.db, self.other)

    def tearDown(self):
        self.db.close()

    def test_insert_and_query(self):
        visit = Visit(site=self.site, date=_at(5), type=VisitType.TYPED)
        visit_id = self.visits.insert(self.db, visit)
        self.assertGreater(visit_id, 0)
        cursor = self.visits.query(self.db)
        self.assertEqual(cursor.count, 1)
        stored = cursor[0]
        self.assertEqual(stored.id, visit_id)
        self.assertEqual(stored.date, _at(5))
        self.assertEqual(stored.type, VisitType.TYPED)
        self.assertEqual(stored.site.url, "https://example.com")
        self.assertEqual(stored.site.id, self.site.id)

    def test_insert_requires_site_id(self):
        result = self.visits.insert(self.db, Visit(site=Site(url="https://new.com")))
        self.assertEqual(result, -1)
        self.assertIsInstance(self.db.last_error, InvalidArgumentError)

    def test_insert_rejects_missing_site(self):
        ghost = Site(url="https://ghost.com", id=9999)
        self.assertEqual(self.visits.insert(self.db, Visit(site=ghost)), -1)
        self.assertIsInstance(self.db.last_error, ConstraintError)
        self.assertEqual(_count(self.db, "visits"), 0)

    def test_update_date_and_type(self):
        visit = Visit(site=self.site, date=_at(5), type=VisitType.LINK)
        visit.id = self.visits.insert(self.db, visit)
        visit.date = _at(6)
        visit.type = VisitType.BOOKMARK
        self.assertEqual(self.visits.update(self.db, visit), 1)
        stored = self.visits.query(self.db)[0]
        self.assertEqual(stored.date, _at(6))
        self.assertEqual(stored.type, VisitType.BOOKMARK)

    def test_insert_rejects_unknown_type(self):
        self.assertEqual(self.visits.insert(self.db, Visit(site=self.site, type=42)), -1)
        self.assertIsInstance(self.db.last_error, InvalidArgumentError)
        self.assertEqual(_count(self.db, "visits"), 0)
        self.assertTrue(self.visits.query(self.db).ok)

    def test_update_rejects_unknown_type(self):
        visit = Visit(site=self.site, date=_at(5), type=VisitType.LINK)
        visit.id = self.visits.insert(self.db, visit)
        visit.type = 42
        self.assertEqual(self.visits.update(self.db, visit), -1)
        self.assertIsInstance(self.db.last_error, InvalidArgumentError)
        cursor = self.visits.query(self.db)
        self.assertTrue(cursor.ok)
        self.assertEqual(cursor[0].type, VisitType.LINK)

    def test_update_requires_id(self):
        self.assertEqual(self.visits.update(self.db, Visit(site=self.site)), -1)
        self.assertIsInstance(self.db.last_error, InvalidArgumentError)

    def test_delete_by_id(self):
        first = Visit(site=self.site, date=_at(5))
        first.id = self.visits.insert(self.db, first)
        self.visits.insert(self.db, Visit(site=self.site, date=_at(6)))
        self.assertEqual(self.visits.delete(self.db, first), 1)
        self.assertEqual(_count(self.db, "visits"), 1)

    def test_delete_by_site_and_date(self):
        self.visits.insert(self.db, Visit(site=self.site, date=_at(5)))
        self.visits.insert(self.db, Visit(site=self.site, date=_at(6)))
        self.assertEqual(self.visits.delete(self.db, Visit(site=self.site, date=_at(5))), 1)
        self.assertEqual(self.visits.query(self.db)[0].date, _at(6))

    def test_delete_all(self):
        self.visits.insert(self.db, Visit(site=self.site))
        self.visits.insert(self.db, Visit(site=self.other))
        self.assertEqual(self.visits.delete(self.db, None), 2)

    def test_delete_visits_for_site(self):
        self.visits.insert(self.db, Visit(site=self.site, date=_at(5)))
        self.visits.insert(self.db, Visit(site=self.site, date=_at(6)))
        self.visits.insert(self.db, Visit(site=self.other, date=_at(7)))
        self.assertEqual(self.visits.delete_visits_for_site(self.db, self.site.id), 2)
        remaining = self.visits.query(self.db)
        self.assertEqual([v.site.url for v in remaining], ["https://other.com"])

    def test_query_filter_and_sort(self):
        self.visits.insert(self.db, Visit(site=self.site, date=_at(5)))
        self.visits.insert(self.db, Visit(site=self.site, date=_at(9)))
        self.visits.insert(self.db, Visit(site=self.other, date=_at(7)))
        newest_first = self.visits.query(self.db, QueryOptions(sort=QuerySort.LAST_VISIT))
        self.assertEqual([v.date for v in newest_first], [_at(9), _at(7), _at(5)])
        only_example = self.visits.query(self.db, QueryOptions(filter="example"))
        self.assertEqual(only_example.count, 2)


if __name__ == "__main__":
    unittest.main()
