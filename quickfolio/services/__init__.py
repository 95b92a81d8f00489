"""QuickFolio record services."""

from quickfolio.services.record_service import RecordService  # noqa: F401
from quickfolio.services.records import FileService, FolioService  # noqa: F401

__all__ = ["RecordService", "FileService", "FolioService"]
