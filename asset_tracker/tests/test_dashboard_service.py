import unittest
from unittest import mock

from asset_tracker.tests.support import assignment_payload, make_store

from asset_tracker.schemas.asset_requests import CreateRequestDto
from asset_tracker.services import asset_service
from asset_tracker.services.assignment_service import create_assignment, return_assignment
from asset_tracker.services.dashboard_service import get_dashboard_stats
from asset_tracker.services.request_service import create_request


class DashboardTests(unittest.TestCase):
    def setUp(self):
        self.engine, self.factory = make_store()
        self.db = self.factory()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def test_empty_store(self):
        self.assertEqual(
            get_dashboard_stats(self.db),
            {"totalAssets": 0, "pendingRequests": 0, "activeAssignments": 0, "assetsByStatus": []},
        )

    def test_read_does_not_commit(self):
        with mock.patch.object(self.db, "commit") as commit:
            get_dashboard_stats(self.db)
        commit.assert_not_called()

    def test_after_assign_and_return(self):
        asset = asset_service.create_asset(self.db, {"asset_tag": "AST-1", "name": "Laptop X", "category": "Laptop"})
        assignment = create_assignment(self.db, assignment_payload(asset.id))

        during = get_dashboard_stats(self.db)
        self.assertEqual(during["activeAssignments"], 1)
        self.assertEqual(during["assetsByStatus"], [{"status": "Assigned", "count": 1}])

        return_assignment(self.db, assignment.id, "returned, good condition")
        stats = get_dashboard_stats(self.db)
        self.assertEqual(stats["totalAssets"], 1)
        self.assertEqual(stats["activeAssignments"], 0)
        self.assertEqual(stats["assetsByStatus"], [{"status": "Available", "count": 1}])

    def test_mixed_statuses_and_pending_requests(self):
        for tag, status in (("A-1", None), ("A-2", "Maintenance"), ("A-3", "Maintenance"), ("A-4", "Retired")):
            fields = {"asset_tag": tag, "name": tag, "category": "Laptop"}
            if status:
                fields["status"] = status
            asset_service.create_asset(self.db, fields)
        create_request(
            self.db,
            CreateRequestDto(requester_name="Sam", requester_email="s@co.com", department="Ops", asset_type="Phone"),
        )

        stats = get_dashboard_stats(self.db)
        self.assertEqual(stats["totalAssets"], 4)
        self.assertEqual(stats["pendingRequests"], 1)
        self.assertEqual(
            stats["assetsByStatus"],
            [
                {"status": "Available", "count": 1},
                {"status": "Maintenance", "count": 2},
                {"status": "Retired", "count": 1},
            ],
        )


if __name__ == "__main__":
    unittest.main()
