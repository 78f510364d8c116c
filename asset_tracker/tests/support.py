import os
from datetime import date

os.environ.setdefault("ASSET_TRACKER_DB_URL", "sqlite+pysqlite://")

from sqlalchemy.orm import sessionmaker

from asset_tracker.db.base import Base
from asset_tracker.db.session import build_engine
from asset_tracker.models import asset_models  # noqa: F401
from asset_tracker.schemas.assignments import CreateAssignmentDto
from asset_tracker.services.category_service import seed_categories


def make_store(db_url="sqlite+pysqlite://"):
    engine = build_engine(db_url)
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
    with factory() as db:
        seed_categories(db)
    return engine, factory


def assignment_fields(asset_id, **overrides):
    fields = {
        "asset_id": asset_id,
        "assigned_to": "Jane",
        "assigned_to_email": "j@co.com",
        "assigned_to_department": "Eng",
        "assigned_to_employee_id": "E1",
        "assignment_date": "2024-01-01",
        "location": "HQ",
        "purpose": "work",
        "assignee_signature": "Jane Doe",
        "assigned_by": "IT Desk",
        "assigned_by_signature": "sig:it-desk",
    }
    fields.update(overrides)
    return fields


def assignment_payload(asset_id, **overrides) -> CreateAssignmentDto:
    return CreateAssignmentDto.model_validate(assignment_fields(asset_id, **overrides))


SCENARIO_DATE = date(2024, 1, 1)
