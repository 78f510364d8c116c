from collections.abc import Generator

from .session import SessionLocal


def get_asset_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
