"""Database connection and session management."""

import logging
import sqlite3
from collections.abc import Generator
from typing import Any

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import NullPool

from app.core.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base class."""

    pass


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on."""
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def engine_options(database_url: str) -> dict[str, Any]:
    """Pick engine options for the configured database driver.

    Neon serverless databases pool connections on the provider side, so the
    engine keeps no pool of its own and always negotiates TLS. Regular
    PostgreSQL gets a local connection pool.
    """
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}

    if "neon.tech" in database_url:
        return {
            "poolclass": NullPool,
            "connect_args": {"sslmode": "require"},
        }

    return {
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
    }


def build_engine(database_url: str) -> Engine:
    """Create an engine for the given URL."""
    kind = "neon" if "neon.tech" in database_url else database_url.split(":", 1)[0]
    logger.info(f"Creating database engine ({kind})")
    return create_engine(database_url, echo=False, **engine_options(database_url))


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(
    bind=engine,
    class_=Session,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


def get_db() -> Generator[Session, None, None]:
    """Get database session dependency."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
