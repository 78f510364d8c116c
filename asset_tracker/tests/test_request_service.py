import re
import unittest
from datetime import datetime
from unittest import mock

from asset_tracker.tests.support import make_store

from asset_tracker.schemas.asset_requests import CreateRequestDto, RequestStatusUpdate
from asset_tracker.services import request_service
from asset_tracker.services.errors import ConflictError, NotFoundError, ValidationError
from asset_tracker.services.request_service import (
    create_request,
    generate_request_number,
    get_request,
    list_requests,
    update_request_status,
)


def _request_payload(**overrides):
    fields = {
        "requester_name": "Sam",
        "requester_email": "sam@co.com",
        "department": "Finance",
        "asset_type": "Laptop",
        "description": "Replacement for a broken unit",
    }
    fields.update(overrides)
    return CreateRequestDto.model_validate(fields)


class RequestNumberTests(unittest.TestCase):
    def test_same_millisecond_numbers_differ(self):
        now = datetime(2024, 1, 1, 9, 30)
        numbers = {generate_request_number(now) for _ in range(50)}
        self.assertEqual(len(numbers), 50)
        stamp = int(now.timestamp() * 1000)
        for number in numbers:
            self.assertRegex(number, rf"^REQ-{stamp}-[0-9A-F]{{6}}$")


class RequestWorkflowTests(unittest.TestCase):
    def setUp(self):
        self.engine, self.factory = make_store()
        self.db = self.factory()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def test_create_defaults(self):
        request = create_request(self.db, _request_payload())
        self.assertTrue(re.match(r"^REQ-\d+-[0-9A-F]{6}$", request.request_id))
        self.assertEqual(request.status, "Pending")
        self.assertEqual(request.priority, "Medium")
        self.assertIsNone(request.approved_date)
        self.assertIsNotNone(request.request_date)

    def test_rapid_creates_get_distinct_ids(self):
        ids = {create_request(self.db, _request_payload()).request_id for _ in range(25)}
        self.assertEqual(len(ids), 25)

    def test_colliding_number_is_regenerated(self):
        numbers = ["REQ-1-AAAAAA", "REQ-1-AAAAAA", "REQ-1-BBBBBB"]
        with mock.patch.object(request_service, "generate_request_number", side_effect=numbers):
            first = create_request(self.db, _request_payload())
            second = create_request(self.db, _request_payload(requester_name="Kim"))
        self.assertEqual(first.request_id, "REQ-1-AAAAAA")
        self.assertEqual(second.request_id, "REQ-1-BBBBBB")
        self.assertEqual(len(list_requests(self.db)), 2)

    def test_repeated_collision_gives_up(self):
        create_request(self.db, _request_payload())
        taken = list_requests(self.db)[0].request_id
        with mock.patch.object(request_service, "generate_request_number", return_value=taken):
            with self.assertRaises(ConflictError):
                create_request(self.db, _request_payload(requester_name="Kim"))
        self.assertEqual(len(list_requests(self.db)), 1)

    def test_create_validation(self):
        with self.assertRaises(ValidationError):
            create_request(self.db, _request_payload(department=" "))
        with self.assertRaises(ValidationError):
            create_request(self.db, _request_payload(requester_email="nobody"))
        with self.assertRaises(ValidationError):
            create_request(self.db, _request_payload(priority="Urgent"))

    def test_approve_sets_metadata(self):
        request = create_request(self.db, _request_payload(priority="High"))
        updated = update_request_status(
            self.db,
            request.id,
            RequestStatusUpdate(status="Approved", approved_by="Manager", notes="ok"),
        )
        self.assertEqual(updated.status, "Approved")
        self.assertEqual(updated.approved_by, "Manager")
        self.assertIsNotNone(updated.approved_date)
        self.assertEqual(updated.notes, "ok")

    def test_back_to_pending_clears_metadata(self):
        request = create_request(self.db, _request_payload())
        update_request_status(self.db, request.id, RequestStatusUpdate(status="Rejected", approved_by="Manager", notes="no budget"))
        updated = update_request_status(self.db, request.id, RequestStatusUpdate(status="Pending"))
        self.assertIsNone(updated.approved_by)
        self.assertIsNone(updated.approved_date)
        self.assertEqual(updated.notes, "no budget")

    def test_status_update_errors(self):
        request = create_request(self.db, _request_payload())
        with self.assertRaises(ValidationError):
            update_request_status(self.db, request.id, RequestStatusUpdate(status="Shipped"))
        with self.assertRaises(ValidationError):
            update_request_status(self.db, request.id, RequestStatusUpdate())
        with self.assertRaises(NotFoundError):
            update_request_status(self.db, 999, RequestStatusUpdate(status="Approved"))
        with self.assertRaises(NotFoundError):
            get_request(self.db, 999)

    def test_list_filters_by_status(self):
        first = create_request(self.db, _request_payload())
        create_request(self.db, _request_payload(requester_name="Kim"))
        update_request_status(self.db, first.id, RequestStatusUpdate(status="Approved", approved_by="Boss"))
        self.assertEqual([r.id for r in list_requests(self.db, status="Approved")], [first.id])
        self.assertEqual(len(list_requests(self.db)), 2)


if __name__ == "__main__":
    unittest.main()
