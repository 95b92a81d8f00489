"""QuickFolio HTTP API — record handlers and the FastAPI app."""

from quickfolio.api.executor import APIRequest, APIResponse, FileHandler, FolioHandler, RecordHandler  # noqa: F401

__all__ = ["APIRequest", "APIResponse", "RecordHandler", "FileHandler", "FolioHandler"]
