"""Database engine and session factory.

Sessions handed out here are trusted until the API binds the caller's claims
to them (:func:`review_filter.db.guard.bind_auth`); from then on the storage
rules installed by :mod:`review_filter.db.guard` check every flush and
filter every ORM query.
"""

from __future__ import annotations

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from review_filter.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Populate the metadata. The models package installs the guard listeners last,
# once every mapped class exists.
import review_filter.models  # noqa: E402,F401

engine = create_engine(
    settings.effective_database_url,
    pool_pre_ping=True,
    echo=settings.sql_debug,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield an unbound session; the request dependency binds the caller to it."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables() -> None:
    """Create all database tables."""
    Base.metadata.create_all(bind=engine)


def drop_tables() -> None:
    """Drop all database tables."""
    Base.metadata.drop_all(bind=engine)
