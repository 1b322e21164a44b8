"""
SQLAlchemy base configuration and session management.

Uses SQLAlchemy 2.0 style with type hints and declarative base.
Designed to be portable between SQLite (dev, tests) and PostgreSQL (prod).
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from vaops.config import config


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    """Current time as naive UTC, the form SQLite hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def make_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine with settings appropriate for the database type."""
    engine_kwargs = {'echo': echo}
    is_sqlite = url.startswith('sqlite')

    if is_sqlite:
        # Sessions are opened from request threads and ACARS workers alike
        engine_kwargs['connect_args'] = {'check_same_thread': False, 'timeout': 30}

    new_engine = create_engine(url, **engine_kwargs)

    if is_sqlite:
        @event.listens_for(new_engine, 'connect')
        def set_sqlite_pragma(dbapi_connection, connection_record):
            """
            Configure SQLite for concurrent telemetry writes.

            WAL mode allows concurrent reads during writes, so live map
            queries never see a half-replaced route.
            """
            cursor = dbapi_connection.cursor()
            cursor.execute('PRAGMA journal_mode=WAL')
            cursor.execute('PRAGMA synchronous=NORMAL')
            cursor.execute('PRAGMA foreign_keys=ON')
            cursor.close()

    return new_engine


engine = make_engine(config.database.url, echo=config.debug)


def make_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(
        bind=bind,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,  # Results are returned after the session closes
    )


# Session factory
SessionLocal = make_session_factory(engine)


@contextmanager
def get_session(
    session_factory: Optional[Callable[[], Session]] = None,
) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Usage:
        with get_session() as session:
            session.query(...)

    Automatically handles commit/rollback and session cleanup.
    """
    session = (session_factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(bind: Optional[Engine] = None) -> None:
    """
    Initialize database schema.

    Creates all tables if they don't exist. For production,
    use Alembic migrations instead.
    """
    Base.metadata.create_all(bind=bind or engine)
