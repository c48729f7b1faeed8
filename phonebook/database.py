"""Database configuration, session management and transactions.

This module defines the :class:`Database` resource that owns the
SQLAlchemy engine and session factory, the declarative base, the
request-scoped session dependency for FastAPI routes, and the
:func:`transaction` helper every multi-statement write goes through.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .core import Settings
from .errors import TransactionError

logger = logging.getLogger(__name__)


Base = declarative_base()
"""Declarative base class for SQLAlchemy models."""


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


class Database:
    """Engine and session factory for one database.

    The application creates a single instance on startup and disposes of
    it on shutdown; tests build their own against SQLite.

    Args:
        url (str): SQLAlchemy connection URL.
        **engine_options: Extra keyword arguments for ``create_engine``.
    """

    def __init__(self, url: str, **engine_options):
        self.engine = create_engine(url, future=True, **engine_options)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autoflush=False,
            autocommit=False,
            future=True,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """
        Build a database from application settings.

        SQLite connections are shared across FastAPI's worker threads;
        server databases get a bounded, pre-pinged connection pool.

        Args:
            settings (Settings): Application settings.

        Returns:
            Database: Unconnected database resource.
        """
        if settings.DATABASE_URL.startswith("sqlite"):
            return cls(
                settings.DATABASE_URL, connect_args={"check_same_thread": False}
            )

        connect_args = {}
        if settings.DATABASE_SSLMODE:
            connect_args["sslmode"] = settings.DATABASE_SSLMODE
        return cls(
            settings.DATABASE_URL,
            connect_args=connect_args,
            pool_size=settings.DATABASE_POOL_SIZE,
            pool_pre_ping=True,
        )

    def session(self) -> Session:
        """Open a new session bound to this database."""
        return self.SessionLocal()

    def create_all(self) -> None:
        """Create any missing tables."""
        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        """Drop every table known to the models."""
        Base.metadata.drop_all(bind=self.engine)

    def dispose(self) -> None:
        """Close all pooled connections."""
        self.engine.dispose()


def get_db(request: Request):
    """
    Provide a SQLAlchemy database session.

    This function is used as a FastAPI dependency.
    It yields a session from the application's database and closes it
    after the request, which rolls back anything left uncommitted.
    """

    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session, operation: str) -> Iterator[Session]:
    """
    Run a block of statements as one unit of work.

    Commits when the block finishes and rolls back on any exception.
    Driver and constraint failures are re-raised as
    :class:`~phonebook.errors.TransactionError`; everything else,
    including the domain errors, propagates unchanged.

    Args:
        db (Session): Session to run the statements on.
        operation (str): Short description used in logs and error messages.

    Raises:
        TransactionError: If the database rejected a statement or the commit.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Rolled back transaction: %s", operation)
        raise TransactionError(operation) from exc
    except BaseException:
        db.rollback()
        raise
