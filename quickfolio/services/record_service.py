"""
QuickFolio CRUD Service — Base class for File and Folio record services.

Service methods:
    - create(data) → instance
    - get(id) → instance | None
    - get_by(field, value) → instance | None
    - update(id, data) → instance | None
    - delete(id) → bool
    - list(filters, order_by, descending) → list
    - count(filters) → int

Every method accepts an optional ``session``; when omitted the service opens
its own session from ``session_factory`` and commits/rolls back around the
call. Handlers pass the request session so multi-step operations share one
transaction.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Type

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quickfolio.db.base import Base, next_timestamp, utcnow
from quickfolio.engine.errors import QuickFolioRecordError
from quickfolio.engine.logging import log, log_record_operation

logger = logging.getLogger("quickfolio.services.record_service")


class RecordService:
    """
    Base CRUD service.

    Subclasses set ``model`` and ``record_name``.

    Usage:
        class FolioService(RecordService):
            model = Folio
            record_name = "Folio"
    """

    model: Type[Base] = None
    record_name: str = ""

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        self._session_factory = session_factory

    def _get_session(self) -> Session:
        if self._session_factory is None:
            raise RuntimeError(
                f"No session factory for {self.__class__.__name__}. "
                "Pass session_factory or an explicit session."
            )
        return self._session_factory()

    @property
    def object_ref(self) -> str:
        return f"records.{self.model.__tablename__}"

    def _run(self, operation: str, session: Optional[Session], fn: Callable[[Session], Any]) -> Any:
        """Run `fn` in the given session, or in an owned one that commits on success."""
        own_session = session is None
        if own_session:
            session = self._get_session()

        try:
            result = fn(session)
            if own_session:
                session.commit()
            return result
        except SQLAlchemyError as e:
            if own_session:
                session.rollback()
            raise QuickFolioRecordError(
                f"{self.record_name} {operation} failed: {e}",
                record_type=self.record_name,
                operation=operation,
            ) from e
        except Exception:
            if own_session:
                session.rollback()
            raise
        finally:
            if own_session:
                session.close()

    # -------------------------------------------------------------------
    # CREATE
    # -------------------------------------------------------------------

    def create(self, data: Dict[str, Any], session: Optional[Session] = None) -> Any:
        """
        Create a new record. The datastore assigns ``id``; both timestamps
        are set to the same instant.
        """
        def _create(s: Session) -> Any:
            start = time.monotonic()
            self.check_references(s, data)
            now = utcnow()
            instance = self.model(**data)
            instance.created_at = now
            instance.updated_at = now
            s.add(instance)
            s.flush()

            duration_ms = (time.monotonic() - start) * 1000
            log(log_record_operation("create", self.object_ref, record_id=instance.id, duration_ms=duration_ms))
            logger.debug(f"Created {self.record_name} id={instance.id}")
            return instance

        return self._run("create", session, _create)

    def check_references(self, session: Session, data: Dict[str, Any]) -> None:
        """Hook for subclasses: verify foreign keys in ``data`` before writing."""

    # -------------------------------------------------------------------
    # READ
    # -------------------------------------------------------------------

    def get(self, record_id: str, session: Optional[Session] = None) -> Optional[Any]:
        """Get a record by primary key."""
        return self._run("get", session, lambda s: s.get(self.model, record_id))

    def get_by(self, field: str, value: Any, session: Optional[Session] = None) -> Optional[Any]:
        """Get the first record whose ``field`` equals ``value``."""
        column = getattr(self.model, field, None)
        if column is None:
            raise ValueError(f"Field '{field}' not found on {self.model.__name__}")

        def _get_by(s: Session) -> Optional[Any]:
            stmt = select(self.model).where(column == value).order_by(self.model.created_at.asc()).limit(1)
            return s.execute(stmt).scalars().first()

        return self._run("get", session, _get_by)

    # -------------------------------------------------------------------
    # UPDATE
    # -------------------------------------------------------------------

    def update(
        self,
        record_id: str,
        data: Dict[str, Any],
        session: Optional[Session] = None,
    ) -> Optional[Any]:
        """
        Update a record by primary key.

        Only fields present in ``data`` are touched (partial update);
        ``updated_at`` always moves strictly forward.
        """
        def _update(s: Session) -> Optional[Any]:
            instance = s.get(self.model, record_id)
            if instance is None:
                return None

            self.check_references(s, data)
            changed: List[str] = []
            for field_name, new_value in data.items():
                if not hasattr(instance, field_name):
                    continue
                if getattr(instance, field_name) != new_value:
                    changed.append(field_name)
                setattr(instance, field_name, new_value)

            instance.updated_at = next_timestamp(instance.updated_at)
            s.flush()

            log(log_record_operation("update", self.object_ref, record_id=record_id, fields_changed=changed))
            logger.debug(f"Updated {self.record_name} id={record_id}: {changed}")
            return instance

        return self._run("update", session, _update)

    # -------------------------------------------------------------------
    # DELETE
    # -------------------------------------------------------------------

    def delete(self, record_id: str, session: Optional[Session] = None) -> bool:
        """Hard-delete a record. Returns False when it does not exist."""
        def _delete(s: Session) -> bool:
            instance = s.get(self.model, record_id)
            if instance is None:
                return False
            s.delete(instance)
            s.flush()

            log(log_record_operation("delete", self.object_ref, record_id=record_id))
            logger.debug(f"Deleted {self.record_name} id={record_id}")
            return True

        return self._run("delete", session, _delete)

    # -------------------------------------------------------------------
    # LIST
    # -------------------------------------------------------------------

    def _filtered(self, stmt, filters: Optional[Dict[str, Any]]):
        if filters:
            for field_name, value in filters.items():
                column = getattr(self.model, field_name, None)
                if column is None:
                    logger.debug(f"Ignoring unknown filter '{field_name}' on {self.model.__name__}")
                    continue
                stmt = stmt.where(column == value)
        return stmt

    def list(
        self,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = True,
        limit: Optional[int] = None,
        session: Optional[Session] = None,
    ) -> List[Any]:
        """
        List records with optional equality filters.

        Ordered by ``order_by`` when given, else by ``created_at`` descending.
        """
        def _list(s: Session) -> List[Any]:
            stmt = self._filtered(select(self.model), filters)

            column = getattr(self.model, order_by, None) if order_by else None
            if column is None:
                column = self.model.created_at
            stmt = stmt.order_by(column.desc() if descending else column.asc())

            if limit:
                stmt = stmt.limit(limit)
            return list(s.execute(stmt).scalars().all())

        return self._run("list", session, _list)

    def count(self, filters: Optional[Dict[str, Any]] = None, session: Optional[Session] = None) -> int:
        def _count(s: Session) -> int:
            stmt = self._filtered(select(func.count()).select_from(self.model), filters)
            return int(s.execute(stmt).scalar_one())

        return self._run("count", session, _count)
