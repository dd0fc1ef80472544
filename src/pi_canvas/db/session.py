"""Database session configuration."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from pi_canvas.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Ensure model modules are imported so that metadata is populated when create_all runs.
import pi_canvas.models  # noqa: E402,F401


# Connection execution option marking a transaction that will write.
WRITE_TRANSACTION = "pi_canvas_write"


def _enable_sqlite_write_locking(engine: Engine) -> None:
    """Take control of BEGIN so write transactions lock up front.

    pysqlite defers BEGIN until the first DML statement, which lets two
    allocators both hold a read lock and then deadlock on upgrade. Write
    transactions (see :func:`begin_write`) emit BEGIN IMMEDIATE and queue on
    the busy timeout; everything else uses a plain deferred BEGIN and never
    waits for a writer. File databases run in WAL mode so readers and the
    single writer do not block each other.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin(conn: Any) -> None:
        if conn.get_execution_options().get(WRITE_TRANSACTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def begin_write(db: Session) -> None:
    """Start a transaction on ``db`` that is going to write.

    Any transaction still open on ``db`` is committed first, since the lock
    mode can only be chosen when a transaction begins. On SQLite this takes
    the database write lock immediately; other backends ignore the option.
    """
    if db.in_transaction():
        db.commit()
    db.connection(execution_options={WRITE_TRANSACTION: True})


def create_db_engine(url: str, **kwargs: Any) -> Engine:
    """Create an engine for ``url`` with the locking behaviour allocation relies on."""
    if url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", 30)
        engine = create_engine(url, connect_args=connect_args, **kwargs)
        _enable_sqlite_write_locking(engine)
        return engine
    return create_engine(url, pool_pre_ping=True, **kwargs)


engine = create_db_engine(settings.effective_database_url, echo=settings.sql_debug)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
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
