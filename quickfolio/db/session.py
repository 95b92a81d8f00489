"""
QuickFolio Database Session Management.

Provides the single entry point for DB initialisation plus a context manager
for DB access. Uses the global EngineRegistry.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import event
from sqlalchemy.orm import Session, scoped_session, sessionmaker

from quickfolio.db.base import Base, engine_registry

logger = logging.getLogger("quickfolio.db.session")

ENGINE_NAME = "quickfolio"

# Scoped session factory populated by init_db()
_session_factory: Optional[scoped_session] = None


def init_db(
    db_url: str,
    create_tables: bool = False,
    pool_size: int = 10,
    max_overflow: int = 20,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    pool_pre_ping: bool = True,
) -> sessionmaker:
    """
    Single entry point for database initialisation.

    1. Registers the "quickfolio" engine in EngineRegistry.
    2. On SQLite, enables foreign-key enforcement on every new connection.
    3. Optionally creates the tables (``Base.metadata.create_all``).
    4. Stores a thread-safe ``scoped_session`` factory as the module singleton.

    Returns:
        A plain ``sessionmaker`` bound to the initialised engine.
    """
    global _session_factory

    if _session_factory is not None:
        _session_factory.remove()

    engine = engine_registry.register(
        ENGINE_NAME, db_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        pool_pre_ping=pool_pre_ping,
    )

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    if create_tables:
        Base.metadata.create_all(engine)
        logger.info(f"Tables ensured on {engine.url.render_as_string(hide_password=True)}")

    factory = sessionmaker(bind=engine, expire_on_commit=False)
    _session_factory = scoped_session(factory)
    return factory


def get_session() -> Session:
    """Get a session for the records database (thread-scoped)."""
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _session_factory()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Context manager for DB sessions with auto-commit/rollback.

    Usage:
        with session_scope() as session:
            folio = session.get(Folio, folio_id)
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def is_initialized() -> bool:
    return _session_factory is not None


def close_all_sessions() -> None:
    """Close all sessions and dispose all engines. Used during shutdown."""
    global _session_factory
    if _session_factory:
        _session_factory.remove()
        _session_factory = None
    engine_registry.dispose()
