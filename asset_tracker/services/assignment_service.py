from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from asset_tracker.db.transaction import transaction
from asset_tracker.models.asset_models import ASSIGNMENT_STATUSES, Asset, Assignment
from asset_tracker.schemas.assignments import CreateAssignmentDto
from asset_tracker.services import asset_service
from asset_tracker.services.errors import ConflictError, NotFoundError, ValidationError

LOGGER = logging.getLogger("asset_tracker.assignments")

REQUIRED_ASSIGNMENT_FIELDS = (
    "asset_id",
    "assigned_to",
    "assigned_to_email",
    "assigned_to_department",
    "assigned_to_employee_id",
    "assignment_date",
    "location",
    "purpose",
    "assignee_signature",
    "assigned_by_signature",
)
ALREADY_ASSIGNED = "Asset already assigned"


def _missing_fields(payload: CreateAssignmentDto) -> list[str]:
    missing = []
    for field in REQUIRED_ASSIGNMENT_FIELDS:
        value = getattr(payload, field)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(field)
    return missing


def _validate_payload(payload: CreateAssignmentDto) -> None:
    missing = _missing_fields(payload)
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if "@" not in payload.assigned_to_email:
        raise ValidationError("assigned_to_email must be a valid email address")
    if payload.expected_return_date and payload.expected_return_date < payload.assignment_date:
        raise ValidationError("expected_return_date cannot be before assignment_date")


def _load_asset_for_assignment(db: Session, asset_id: int) -> Asset:
    asset = db.execute(
        select(Asset)
        .where(Asset.id == asset_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalars().first()
    if not asset:
        raise NotFoundError("Asset not found")
    return asset


def create_assignment(db: Session, payload: CreateAssignmentDto) -> Assignment:
    _validate_payload(payload)

    with transaction(db, conflict_message=ALREADY_ASSIGNED):
        asset = _load_asset_for_assignment(db, payload.asset_id)
        if asset_service.find_active_assignment(db, asset.id):
            LOGGER.warning("Assignment rejected asset_id=%s reason=already_assigned", asset.id)
            raise ConflictError(ALREADY_ASSIGNED)
        if asset.status != "Available":
            LOGGER.warning("Assignment rejected asset_id=%s reason=status_%s", asset.id, asset.status)
            raise ConflictError(f"Asset is not available for assignment (status: {asset.status})")

        assignment = Assignment(
            asset_id=asset.id,
            assigned_to=payload.assigned_to.strip(),
            assigned_to_email=payload.assigned_to_email.strip(),
            assigned_to_department=payload.assigned_to_department.strip(),
            assigned_to_employee_id=payload.assigned_to_employee_id.strip(),
            assignment_date=payload.assignment_date,
            location=payload.location.strip(),
            purpose=payload.purpose.strip(),
            expected_return_date=payload.expected_return_date,
            terms_and_conditions=payload.terms_and_conditions,
            notes=payload.notes,
            assignee_signature=payload.assignee_signature,
            assigned_by=payload.assigned_by,
            assigned_by_signature=payload.assigned_by_signature,
            status="Active",
            created_at=datetime.now(),
        )
        db.add(assignment)
        # A concurrent assignment for the same asset fails here on the partial unique index.
        db.flush()
        asset_service.set_status(db, asset.id, "Assigned", assigned_to=assignment.assigned_to)

    LOGGER.info("Assignment created id=%s asset_id=%s", assignment.id, assignment.asset_id)
    return assignment


def return_assignment(db: Session, assignment_id: int, return_notes: str | None = None) -> Assignment:
    with transaction(db):
        assignment = db.get(Assignment, assignment_id)
        if not assignment or assignment.status != "Active":
            raise NotFoundError("Assignment not found or already returned")

        result = db.execute(
            update(Assignment)
            .where(Assignment.id == assignment_id)
            .where(Assignment.status == "Active")
            .values(status="Returned", returned_at=datetime.now(), notes=return_notes)
        )
        if result.rowcount != 1:
            raise NotFoundError("Assignment not found or already returned")
        asset_service.set_status(db, assignment.asset_id, "Available", assigned_to=None)

    db.refresh(assignment)
    LOGGER.info("Assignment returned id=%s asset_id=%s", assignment.id, assignment.asset_id)
    return assignment


def get_assignment(db: Session, assignment_id: int) -> Assignment:
    assignment = db.execute(
        select(Assignment)
        .options(selectinload(Assignment.asset))
        .where(Assignment.id == assignment_id)
    ).scalars().first()
    if not assignment:
        raise NotFoundError("Assignment not found")
    return assignment


def list_assignments(db: Session, status: str | None = None, asset_id: int | None = None) -> list[Assignment]:
    stmt = select(Assignment).options(selectinload(Assignment.asset))
    if status:
        if status not in ASSIGNMENT_STATUSES:
            raise ValidationError(f"Invalid assignment status: {status}")
        stmt = stmt.where(Assignment.status == status)
    if asset_id is not None:
        stmt = stmt.where(Assignment.asset_id == asset_id)
    return db.execute(stmt.order_by(Assignment.created_at.desc(), Assignment.id.desc())).scalars().all()


def serialize_assignment(assignment: Assignment) -> dict:
    asset = assignment.asset
    return {
        "id": assignment.id,
        "asset_id": assignment.asset_id,
        "assigned_to": assignment.assigned_to,
        "assigned_to_email": assignment.assigned_to_email,
        "assigned_to_department": assignment.assigned_to_department,
        "assigned_to_employee_id": assignment.assigned_to_employee_id,
        "assignment_date": assignment.assignment_date,
        "location": assignment.location,
        "purpose": assignment.purpose,
        "expected_return_date": assignment.expected_return_date,
        "terms_and_conditions": bool(assignment.terms_and_conditions),
        "notes": assignment.notes,
        "assignee_signature": assignment.assignee_signature,
        "assigned_by": assignment.assigned_by,
        "assigned_by_signature": assignment.assigned_by_signature,
        "status": assignment.status,
        "created_at": assignment.created_at,
        "returned_at": assignment.returned_at,
        "asset_name": asset.name if asset else None,
        "asset_tag": asset.asset_tag if asset else None,
        "category": asset.category if asset else None,
    }
