"""Unit-of-work boundary shared by the service layer."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from asset_tracker.services.errors import ConflictError, StorageError

LOGGER = logging.getLogger("asset_tracker.db")


@contextmanager
def transaction(db: Session, conflict_message: str | None = None) -> Iterator[Session]:
    """Commit the session when the block succeeds, roll back otherwise.

    Integrity violations raised by the store become ``ConflictError`` and any
    other SQLAlchemy failure becomes an opaque ``StorageError``. Domain errors
    raised inside the block propagate unchanged after the rollback.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        LOGGER.warning("Integrity violation: %s", exc.orig)
        raise ConflictError(conflict_message or "The change conflicts with existing data.") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        LOGGER.exception("Storage failure")
        raise StorageError() from exc
    except Exception:
        db.rollback()
        raise
