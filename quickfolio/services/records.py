"""File and Folio services — entity rules on top of RecordService."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from quickfolio.db.models import File, Folio
from quickfolio.engine.errors import QuickFolioNotFoundError
from quickfolio.services.record_service import RecordService

logger = logging.getLogger("quickfolio.services.records")


class FolioService(RecordService):
    model = Folio
    record_name = "Folio"

    def get_by_item(self, item: str, session: Optional[Session] = None) -> Optional[Folio]:
        """Look up a folio by its human-readable folio number."""
        return self.get_by("item", item, session=session)

    def check_references(self, session: Session, data: Dict[str, Any]) -> None:
        """A referenced File must exist at write time."""
        file_id = data.get("file_id")
        if file_id is None:
            return
        if session.get(File, file_id) is None:
            raise QuickFolioNotFoundError("File not found", record_type="File", record_id=file_id)


class FileService(RecordService):
    model = File
    record_name = "File"

    def __init__(self, session_factory=None, folio_service: Optional[FolioService] = None):
        super().__init__(session_factory)
        self._folios = folio_service or FolioService(session_factory)

    def _filtered(self, stmt, filters: Optional[Dict[str, Any]]):
        filters = dict(filters or {})
        folio_id = filters.pop("folio_id", None)
        if folio_id:
            stmt = stmt.where(File.folios.any(Folio.id == folio_id))
        return super()._filtered(stmt, filters)

    def create_with_folio(
        self,
        data: Dict[str, Any],
        folio_number: Optional[str],
        session: Session,
    ) -> File:
        """
        Create a File, optionally attaching the Folio whose ``item`` equals
        ``folio_number``. The folio is resolved before anything is written.
        """
        folio = None
        if folio_number:
            folio = self._folios.get_by_item(folio_number, session=session)
            if folio is None:
                raise QuickFolioNotFoundError("Folio not found", record_type="Folio", folio_number=folio_number)

        instance = self.create(data, session=session)
        if folio is not None:
            folio.file = instance
            session.flush()
            logger.debug(f"Attached Folio {folio.item} to File id={instance.id}")
        return instance
