import unittest

from asset_tracker.tests.support import make_store

from sqlalchemy import text

from asset_tracker.db.session import build_engine, init_db
from asset_tracker.db.transaction import transaction
from asset_tracker.models.asset_models import Category
from asset_tracker.services.category_service import DEFAULT_CATEGORIES, seed_categories
from asset_tracker.services.errors import ConflictError, NotFoundError, StorageError


class TransactionTests(unittest.TestCase):
    def setUp(self):
        self.engine, self.factory = make_store()
        self.db = self.factory()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def test_integrity_error_becomes_conflict(self):
        with self.assertRaises(ConflictError) as ctx:
            with transaction(self.db, conflict_message="Category exists"):
                self.db.add(Category(name="Laptop"))
        self.assertEqual(ctx.exception.status_code, 409)
        self.assertEqual(ctx.exception.message, "Category exists")

    def test_storage_failure_is_opaque(self):
        with self.assertRaises(StorageError) as ctx:
            with transaction(self.db):
                self.db.execute(text("SELECT * FROM no_such_table"))
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(ctx.exception.message, "A storage error occurred.")

    def test_domain_error_rolls_back(self):
        with self.assertRaises(NotFoundError):
            with transaction(self.db):
                self.db.add(Category(name="Drone"))
                self.db.flush()
                raise NotFoundError("gone")
        self.assertIsNone(self.db.query(Category).filter_by(name="Drone").first())


class SeedTests(unittest.TestCase):
    def test_init_db_seeds_once(self):
        engine = build_engine("sqlite+pysqlite://")
        try:
            self.assertEqual(init_db(bind=engine), len(DEFAULT_CATEGORIES))
            self.assertEqual(init_db(bind=engine), 0)
        finally:
            engine.dispose()

    def test_seed_extra_names(self):
        engine, factory = make_store()
        try:
            with factory() as db:
                self.assertEqual(seed_categories(db, ["Laptop", "Drone"]), 1)
        finally:
            engine.dispose()


if __name__ == "__main__":
    unittest.main()
