from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from asset_tracker.db.transaction import transaction
from asset_tracker.models.asset_models import ASSET_STATUSES, Asset, Assignment
from asset_tracker.services.errors import ConflictError, NotFoundError, ValidationError

LOGGER = logging.getLogger("asset_tracker.assets")

REQUIRED_ASSET_FIELDS = ("asset_tag", "name", "category")
# Columns a client may write; status is validated separately and assigned_to is engine-owned.
WRITABLE_ASSET_FIELDS = (
    "asset_tag",
    "name",
    "category",
    "brand",
    "model",
    "serial_number",
    "purchase_date",
    "warranty_expiry",
    "status",
    "location",
    "notes",
)
ENGINE_OWNED_STATUS = "Assigned"
STATUS_OWNED_BY_ASSIGNMENT = "Asset status is managed by its active assignment; return it first."


def _clean(value):
    if isinstance(value, str):
        return value.strip()
    return value


def _validate_client_status(status: str) -> None:
    if status not in ASSET_STATUSES:
        raise ValidationError(f"Invalid asset status: {status}. Expected one of {', '.join(ASSET_STATUSES)}.")
    if status == ENGINE_OWNED_STATUS:
        raise ConflictError("Asset status 'Assigned' can only be set by creating an assignment.")


def find_active_assignment(db: Session, asset_id: int) -> Assignment | None:
    return db.execute(
        select(Assignment)
        .where(Assignment.asset_id == asset_id)
        .where(Assignment.status == "Active")
    ).scalars().first()


def _tag_taken(db: Session, asset_tag: str, exclude_id: int | None = None) -> bool:
    stmt = select(Asset.id).where(Asset.asset_tag == asset_tag)
    if exclude_id is not None:
        stmt = stmt.where(Asset.id != exclude_id)
    return db.execute(stmt).first() is not None


def get_asset(db: Session, asset_id: int) -> Asset:
    asset = db.get(Asset, asset_id)
    if not asset:
        raise NotFoundError("Asset not found")
    return asset


def list_assets(
    db: Session,
    query: str | None = None,
    status: str | None = None,
    category: str | None = None,
) -> list[Asset]:
    stmt = select(Asset)
    needle = (query or "").strip()
    if needle:
        stmt = stmt.where(or_(Asset.asset_tag.ilike(f"%{needle}%"), Asset.name.ilike(f"%{needle}%")))
    if status:
        stmt = stmt.where(Asset.status == status)
    if category:
        stmt = stmt.where(Asset.category == category)
    return db.execute(stmt.order_by(Asset.created_at.desc(), Asset.id.desc())).scalars().all()


def create_asset(db: Session, fields: dict) -> Asset:
    values = {key: _clean(fields.get(key)) for key in WRITABLE_ASSET_FIELDS if key in fields}
    missing = [key for key in REQUIRED_ASSET_FIELDS if not values.get(key)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    status = values.get("status") or "Available"
    _validate_client_status(status)
    values["status"] = status

    if _tag_taken(db, values["asset_tag"]):
        raise ConflictError(f"Asset tag already exists: {values['asset_tag']}")

    now = datetime.now()
    asset = Asset(**values)
    asset.created_at = now
    asset.updated_at = now

    with transaction(db, conflict_message=f"Asset tag already exists: {values['asset_tag']}"):
        db.add(asset)
    LOGGER.info("Asset created id=%s tag=%s status=%s", asset.id, asset.asset_tag, asset.status)
    return asset


def update_asset(db: Session, asset_id: int, fields: dict) -> Asset:
    asset = get_asset(db, asset_id)
    values = {key: _clean(value) for key, value in fields.items() if key in WRITABLE_ASSET_FIELDS}

    blanked = [key for key in REQUIRED_ASSET_FIELDS if key in values and not values[key]]
    if blanked:
        raise ValidationError(f"Required fields cannot be empty: {', '.join(blanked)}")

    new_status = values.pop("status", None)
    if new_status == asset.status:
        new_status = None
    if new_status is not None:
        _validate_client_status(new_status)
        if find_active_assignment(db, asset.id):
            raise ConflictError(STATUS_OWNED_BY_ASSIGNMENT)

    new_tag = values.get("asset_tag")
    if new_tag and new_tag != asset.asset_tag and _tag_taken(db, new_tag, exclude_id=asset.id):
        raise ConflictError(f"Asset tag already exists: {new_tag}")

    now = datetime.now()
    with transaction(db, conflict_message="Asset tag already exists"):
        if new_status is not None:
            _write_client_status(db, asset, new_status, now)
        for key, value in values.items():
            setattr(asset, key, value)
        asset.updated_at = now

    if new_status is not None:
        db.refresh(asset)
        values["status"] = new_status
    LOGGER.info("Asset updated id=%s fields=%s", asset.id, ",".join(sorted(values)))
    return asset


def _write_client_status(db: Session, asset: Asset, status: str, now: datetime) -> None:
    # Re-checked at write time; an assignment committed since the pre-check wins.
    active = (
        select(Assignment.id)
        .where(Assignment.asset_id == Asset.id)
        .where(Assignment.status == "Active")
        .exists()
    )
    result = db.execute(
        update(Asset)
        .where(Asset.id == asset.id)
        .where(Asset.status == asset.status)
        .where(~active)
        .values(status=status, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        LOGGER.warning("Asset status change rejected id=%s reason=assigned_concurrently", asset.id)
        raise ConflictError(STATUS_OWNED_BY_ASSIGNMENT)


def delete_asset(db: Session, asset_id: int) -> None:
    asset = get_asset(db, asset_id)
    if find_active_assignment(db, asset.id):
        LOGGER.warning("Asset delete rejected id=%s reason=active_assignment", asset.id)
        raise ConflictError("Asset has an active assignment and cannot be deleted.")
    history = db.execute(
        select(func.count(Assignment.id)).where(Assignment.asset_id == asset.id)
    ).scalar()
    if history:
        LOGGER.warning("Asset delete rejected id=%s reason=assignment_history", asset.id)
        raise ConflictError("Asset has assignment history and cannot be deleted; retire it instead.")

    with transaction(db, conflict_message="Asset is still referenced and cannot be deleted."):
        db.delete(asset)
    LOGGER.info("Asset deleted id=%s tag=%s", asset_id, asset.asset_tag)


def set_status(db: Session, asset_id: int, status: str, assigned_to: str | None = None) -> Asset:
    """Move an asset to ``status`` inside the caller's transaction.

    Only the assignment engine calls this; it neither validates client rules
    nor commits.
    """
    if status not in ASSET_STATUSES:
        raise ValidationError(f"Invalid asset status: {status}")
    asset = get_asset(db, asset_id)
    asset.status = status
    asset.assigned_to = assigned_to
    asset.updated_at = datetime.now()
    return asset


def serialize_asset(asset: Asset) -> dict:
    return {
        "id": asset.id,
        "asset_tag": asset.asset_tag,
        "name": asset.name,
        "category": asset.category,
        "brand": asset.brand,
        "model": asset.model,
        "serial_number": asset.serial_number,
        "purchase_date": asset.purchase_date,
        "warranty_expiry": asset.warranty_expiry,
        "status": asset.status,
        "location": asset.location,
        "assigned_to": asset.assigned_to,
        "notes": asset.notes,
        "created_at": asset.created_at,
        "updated_at": asset.updated_at,
    }
