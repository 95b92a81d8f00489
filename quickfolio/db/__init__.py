"""QuickFolio persistence — SQLAlchemy models, engine registry, sessions."""

from quickfolio.db.base import Base, engine_registry  # noqa: F401
from quickfolio.db.models import File, Folio  # noqa: F401
from quickfolio.db.session import close_all_sessions, get_session, init_db, session_scope  # noqa: F401

__all__ = [
    "Base",
    "engine_registry",
    "File",
    "Folio",
    "init_db",
    "get_session",
    "session_scope",
    "close_all_sessions",
]
