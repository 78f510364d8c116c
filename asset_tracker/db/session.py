import logging
import os
import sqlite3

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .base import Base

DEFAULT_DB_URL = "sqlite:///./asset_tracker.db"
LOGGER = logging.getLogger("asset_tracker.db")


def _env_flag(name: str) -> bool:
    return str(os.environ.get(name, "")).strip().lower() in {"1", "true", "yes", "on"}


def _is_sqlite_memory_url(db_url: str) -> bool:
    if not db_url.startswith("sqlite"):
        return False
    _, _, path = db_url.partition("://")
    return path in {"", "/", "/:memory:"} or path.endswith(":memory:")


def build_engine(db_url: str, echo: bool = False) -> Engine:
    kwargs = {"pool_pre_ping": True, "future": True, "echo": echo}
    if db_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_sqlite_memory_url(db_url):
            kwargs["poolclass"] = StaticPool
    return create_engine(db_url, **kwargs)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    if not isinstance(dbapi_connection, sqlite3.Connection):
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


ASSET_TRACKER_DB_URL = (os.environ.get("ASSET_TRACKER_DB_URL") or DEFAULT_DB_URL).strip()

engine = build_engine(ASSET_TRACKER_DB_URL, echo=_env_flag("ASSET_TRACKER_DB_ECHO"))

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
    future=True,
)


def init_db(bind: Engine | None = None) -> int:
    """Create missing tables and seed the category lookup list.

    Returns the number of categories inserted by this call.
    """
    from asset_tracker.models import asset_models  # noqa: F401
    from asset_tracker.services.category_service import seed_categories

    target = bind or engine
    Base.metadata.create_all(bind=target)
    factory = SessionLocal if bind is None else sessionmaker(bind=target, autoflush=False, expire_on_commit=False, future=True)
    with factory() as db:
        created = seed_categories(db)
    LOGGER.info("Database initialised url=%s seeded_categories=%s", target.url.render_as_string(hide_password=True), created)
    return created
