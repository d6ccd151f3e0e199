"""Database engine and helpers.

This module configures the SQLModel/SQLAlchemy engine from
`settings.DATABASE_URL` and provides small helpers used by the
application and tests. The default is a SQLite file next to the
package; `sqlite://` selects a single shared in-memory database.
"""

from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

from .config import settings


def _make_engine(url: str):
    if not url.startswith("sqlite"):
        return create_engine(url, echo=False)
    kwargs = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # every connection must see the same in-memory database
        kwargs["poolclass"] = StaticPool
    return create_engine(url, echo=False, **kwargs)


engine = _make_engine(settings.DATABASE_URL)


def create_db_and_tables():
    """Create database tables using SQLModel metadata.

    Tables that already exist are left untouched.
    """
    SQLModel.metadata.create_all(engine)


def drop_db_and_tables():
    """Drop every table known to SQLModel metadata. Used by the test suite."""
    SQLModel.metadata.drop_all(engine)


def get_session():
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session and ensures it is closed when the
    request scope finishes.
    """
    with Session(engine) as session:
        yield session
