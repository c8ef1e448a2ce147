"""Database engine and helpers.

This module configures the SQLModel/SQLAlchemy engine from
`settings.DATABASE_URL` (a local SQLite file `app.db` in the backend
directory by default) and provides the session dependency used by the
HTTP controllers. Tests replace `get_session` with an in-memory engine.
"""

from sqlalchemy import event
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

from .config import settings


def build_engine(url: str, echo: bool = False, **kwargs):
    """Create an engine for `url`.

    SQLite connections get `check_same_thread=False` (FastAPI runs sync
    handlers in a threadpool) and have foreign key enforcement switched on,
    which SQLite leaves off by default.
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    if url in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every thread sees an empty database
        kwargs.setdefault("poolclass", StaticPool)
    eng = create_engine(url, echo=echo, **kwargs)
    if url.startswith("sqlite"):
        event.listen(eng, "connect", _enable_sqlite_foreign_keys)
    return eng


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = build_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)


def create_db_and_tables(bind=None):
    """Create database tables using SQLModel metadata.

    This function is intended for local development and lightweight
    scripts; production deployments should apply `migrations/*.sql`
    (see `run_migrations.py`) instead.
    """
    # models must be imported so their tables are registered on the metadata
    from . import models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)


def get_session():
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session and ensures it is closed when the
    request scope finishes.
    """
    with Session(engine) as session:
        yield session
