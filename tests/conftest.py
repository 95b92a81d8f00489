"""
QuickFolio Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import pytest


# ---------------------------------------------------------------------------
# Environment setup: no real database files or log queues in unit tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_globals(monkeypatch):
    """Reset global singletons between tests."""
    import quickfolio.engine.config as cfg_mod
    import quickfolio.engine.logging as log_mod

    monkeypatch.delenv("QUICKFOLIO_DATABASE_URL", raising=False)
    cfg_mod._config = None
    yield
    cfg_mod._config = None
    log_mod.shutdown_logging()
    package_logger = logging.getLogger("quickfolio")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)


@pytest.fixture
def db():
    """In-memory SQLite records database with tables created. Yields the sessionmaker."""
    from quickfolio.db.session import close_all_sessions, init_db

    factory = init_db("sqlite://", create_tables=True)
    yield factory
    close_all_sessions()


@pytest.fixture
def session(db):
    """A plain session on the test database, separate from the scoped one."""
    s = db()
    yield s
    s.close()


@pytest.fixture
def project_root(tmp_path):
    """A project directory holding a minimal quickfolio.yaml."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "quickfolio.yaml").write_text(
        "quickfolio:\n"
        "  name: TestFolio\n"
        "  version: '2.0.0'\n"
        "  environment: staging\n"
        "database:\n"
        f"  url: sqlite:///{(root / 'test.db').as_posix()}\n"
        "logging:\n"
        "  level: debug\n"
        f"  directory: {(root / 'logs').as_posix()}\n"
        "export:\n"
        f"  directory: {(root / 'exports').as_posix()}\n",
        encoding="utf-8",
    )
    return root


@pytest.fixture
def folio_body() -> Dict[str, Any]:
    """A valid Folio create payload."""
    return {
        "item": "KeNHA/03.E/R&I/VOL.1",
        "runningNo": "12",
        "description": "Research proposals",
        "draftedBy": "Kelvin Mwangi",
        "letterDate": "2024-01-15T09:30:00Z",
    }


@pytest.fixture
def file_body() -> Dict[str, Any]:
    """A valid File create payload (no folio attached)."""
    return {
        "name": "Research & Innovation",
        "description": "Innovation projects",
        "createdBy": "Kelvin Mwangi",
    }


@pytest.fixture
def sample_folios() -> List[Dict[str, Any]]:
    """Two folio records as returned by the API."""
    return [
        {
            "id": "f1",
            "item": "A/1",
            "runningNo": "1",
            "description": None,
            "draftedBy": "Bob",
            "letterDate": "2024-01-01",
            "createdAt": "2024-01-02T10:00:00+00:00",
        },
        {
            "id": "f2",
            "item": "B/2",
            "runningNo": "2",
            "description": None,
            "draftedBy": "Alice",
            "letterDate": "2024-06-01",
            "createdAt": "2024-06-02T10:00:00+00:00",
        },
    ]
