import io
import unittest
from contextlib import redirect_stdout

from asset_tracker.tests.support import assignment_payload, make_store

from sqlalchemy import create_engine, text

from asset_tracker.scripts import db_overview
from asset_tracker.services import asset_service
from asset_tracker.services.assignment_service import create_assignment


class DbOverviewTests(unittest.TestCase):
    def setUp(self):
        self.engine, self.factory = make_store()

    def tearDown(self):
        self.engine.dispose()

    def _checks(self):
        return {row.name: row for row in db_overview.run_integrity_checks(self.engine)}

    def test_consistent_store_passes(self):
        with self.factory() as db:
            asset = asset_service.create_asset(db, {"asset_tag": "AST-1", "name": "Laptop X", "category": "Laptop"})
            create_assignment(db, assignment_payload(asset.id))

        self.assertTrue(all(row.ok for row in db_overview.run_existence_checks(self.engine)))
        self.assertTrue(all(row.ok for row in db_overview.run_column_checks(self.engine)))
        self.assertTrue(all(row.ok for row in self._checks().values()))

    def test_detects_status_drift(self):
        with self.factory() as db:
            asset_service.create_asset(db, {"asset_tag": "AST-1", "name": "Laptop X", "category": "Laptop"})
            other = asset_service.create_asset(db, {"asset_tag": "AST-2", "name": "Laptop Y", "category": "Laptop"})
            create_assignment(db, assignment_payload(other.id))

        with self.engine.begin() as conn:
            conn.execute(text("UPDATE assets SET status = 'Assigned' WHERE asset_tag = 'AST-1'"))
            conn.execute(text("UPDATE assets SET status = 'Maintenance' WHERE asset_tag = 'AST-2'"))

        checks = self._checks()
        self.assertFalse(checks["assets:assigned_without_active_assignment"].ok)
        self.assertEqual(checks["assets:assigned_without_active_assignment"].detail, "count=1")
        self.assertFalse(checks["assets:active_assignment_but_not_assigned"].ok)
        self.assertTrue(checks["assignments:multiple_active_per_asset"].ok)

    def test_missing_tables_reported(self):
        empty = create_engine("sqlite+pysqlite://")
        try:
            existence = db_overview.run_existence_checks(empty)
            self.assertFalse(any(row.ok for row in existence))
            self.assertEqual(db_overview.run_integrity_checks(empty)[0].name, "integrity")
        finally:
            empty.dispose()

    def test_main_requires_url(self):
        out = io.StringIO()
        with redirect_stdout(out):
            self.assertEqual(db_overview.main(["--db-url", ""]), 2)
        self.assertIn("ASSET_TRACKER_DB_URL", out.getvalue())


if __name__ == "__main__":
    unittest.main()
