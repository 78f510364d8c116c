from __future__ import annotations

import logging
import secrets
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from asset_tracker.db.transaction import transaction
from asset_tracker.models.asset_models import REQUEST_PRIORITIES, REQUEST_STATUSES, AssetRequest
from asset_tracker.schemas.asset_requests import CreateRequestDto, RequestStatusUpdate
from asset_tracker.services.errors import ConflictError, NotFoundError, ValidationError

LOGGER = logging.getLogger("asset_tracker.requests")

REQUIRED_REQUEST_FIELDS = ("requester_name", "requester_email", "department", "asset_type")
REQUEST_NUMBER_ATTEMPTS = 2


def generate_request_number(now: datetime | None = None) -> str:
    stamp = int((now or datetime.now()).timestamp() * 1000)
    return f"REQ-{stamp}-{secrets.token_hex(3).upper()}"


def create_request(db: Session, payload: CreateRequestDto) -> AssetRequest:
    missing = [
        field
        for field in REQUIRED_REQUEST_FIELDS
        if not (getattr(payload, field) or "").strip()
    ]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if "@" not in payload.requester_email:
        raise ValidationError("requester_email must be a valid email address")

    priority = (payload.priority or "").strip() or "Medium"
    if priority not in REQUEST_PRIORITIES:
        raise ValidationError(f"Invalid priority: {priority}. Expected one of {', '.join(REQUEST_PRIORITIES)}.")

    for attempt in range(1, REQUEST_NUMBER_ATTEMPTS + 1):
        now = datetime.now()
        request = AssetRequest(
            request_id=generate_request_number(now),
            requester_name=payload.requester_name.strip(),
            requester_email=payload.requester_email.strip(),
            department=payload.department.strip(),
            asset_type=payload.asset_type.strip(),
            description=payload.description,
            priority=priority,
            status="Pending",
            request_date=now,
            created_at=now,
            updated_at=now,
        )
        try:
            with transaction(db, conflict_message="Request identifier collision; please resubmit."):
                db.add(request)
        except ConflictError:
            if attempt == REQUEST_NUMBER_ATTEMPTS:
                raise
            LOGGER.warning("Request number collision request_id=%s attempt=%s", request.request_id, attempt)
            continue
        break
    LOGGER.info("Request created id=%s request_id=%s priority=%s", request.id, request.request_id, request.priority)
    return request


def update_request_status(db: Session, request_pk: int, payload: RequestStatusUpdate) -> AssetRequest:
    status = (payload.status or "").strip()
    if not status:
        raise ValidationError("Missing required fields: status")
    if status not in REQUEST_STATUSES:
        raise ValidationError(f"Invalid request status: {status}. Expected one of {', '.join(REQUEST_STATUSES)}.")

    request = db.get(AssetRequest, request_pk)
    if not request:
        raise NotFoundError("Request not found")

    previous = request.status
    with transaction(db):
        request.status = status
        if status == "Pending":
            request.approved_by = None
            request.approved_date = None
        else:
            request.approved_by = payload.approved_by
            request.approved_date = datetime.now()
        if payload.notes is not None:
            request.notes = payload.notes
        request.updated_at = datetime.now()
    LOGGER.info("Request status changed id=%s from=%s to=%s", request.id, previous, status)
    return request


def get_request(db: Session, request_pk: int) -> AssetRequest:
    request = db.get(AssetRequest, request_pk)
    if not request:
        raise NotFoundError("Request not found")
    return request


def list_requests(db: Session, status: str | None = None) -> list[AssetRequest]:
    stmt = select(AssetRequest)
    if status:
        stmt = stmt.where(AssetRequest.status == status)
    return db.execute(stmt.order_by(AssetRequest.created_at.desc(), AssetRequest.id.desc())).scalars().all()


def serialize_request(request: AssetRequest) -> dict:
    return {
        "id": request.id,
        "request_id": request.request_id,
        "requester_name": request.requester_name,
        "requester_email": request.requester_email,
        "department": request.department,
        "asset_type": request.asset_type,
        "description": request.description,
        "priority": request.priority,
        "status": request.status,
        "request_date": request.request_date,
        "approved_date": request.approved_date,
        "approved_by": request.approved_by,
        "notes": request.notes,
        "created_at": request.created_at,
        "updated_at": request.updated_at,
    }
