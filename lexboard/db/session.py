"""
Database Session Management
===========================

SQLAlchemy engine and session handling. A `Database` is built once per
process (API lifespan or worker task) and handed to whoever needs it.
"""

import os
import logging
from contextlib import contextmanager
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool

from .models import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ondelete rules unless enabled per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _create_engine_for_url(database_url: str, echo: bool = False):
    # SQLite for development/testing
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=echo,
        )
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        # Prevent long hangs during cold starts / DB outages
        connect_args={
            "connect_timeout": int(os.environ.get("DB_CONNECT_TIMEOUT", "5")),
        },
        echo=echo,
    )


class Database:
    """
    Owns an engine and its session factory.

    Usage:
        database = Database("sqlite:///./dev.db")
        database.create_all()
        with database.session() as db:
            db.query(User).all()
        database.dispose()
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine = _create_engine_for_url(url, echo=echo)
        self._session_factory = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def create_all(self) -> None:
        """Initialize database tables"""
        Base.metadata.create_all(bind=self.engine)

    def new_session(self) -> Session:
        return self._session_factory()

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Session that commits on success and rolls back on error."""
        db = self.new_session()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def dispose(self) -> None:
        self.engine.dispose()
        logger.debug("Disposed engine for %s", self.url.split("@")[-1])


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Dependency for FastAPI to get database session.

    Usage:
        @router.get("/items")
        def read_items(db: Session = Depends(get_db)):
            ...
    """
    db = request.app.state.resources.database.new_session()
    try:
        yield db
    finally:
        db.close()
