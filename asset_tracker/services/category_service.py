from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from asset_tracker.db.transaction import transaction
from asset_tracker.models.asset_models import Category

DEFAULT_CATEGORIES = [
    "Laptop",
    "Desktop",
    "Monitor",
    "Keyboard",
    "Mouse",
    "Printer",
    "Scanner",
    "Tablet",
    "Phone",
    "Server",
    "Network Equipment",
    "Software License",
]


def seed_categories(db: Session, names: list[str] | None = None) -> int:
    wanted = names if names is not None else DEFAULT_CATEGORIES
    existing = set(db.execute(select(Category.name)).scalars().all())
    created = 0
    with transaction(db):
        for name in wanted:
            if name in existing:
                continue
            db.add(Category(name=name))
            existing.add(name)
            created += 1
    return created


def list_categories(db: Session) -> list[Category]:
    return db.execute(select(Category).order_by(Category.name)).scalars().all()


def serialize_category(category: Category) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "created_at": category.created_at,
    }
