"""
QuickFolio Error Hierarchy — Structured exceptions mapped onto HTTP envelopes.

Every error carries a message plus free-form context that serializes to JSON
for the structured log files.

Hierarchy:
    QuickFolioError
    ├── QuickFolioValidationError       — Input validation failed (400)
    ├── QuickFolioNotFoundError         — Record or referenced record absent (404)
    ├── QuickFolioMethodNotAllowedError — Unsupported HTTP method (405)
    ├── QuickFolioRecordError           — Datastore operation failed (500)
    ├── QuickFolioConfigError           — Invalid quickfolio.yaml
    └── QuickFolioClientError           — API client failures
        ├── QuickFolioAPIError          — Non-2xx response from the API
        └── QuickFolioConnectionError   — Transport failure (no response)
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class QuickFolioError(Exception):
    """
    Base error for all QuickFolio failures.
    All context is serializable to JSON.
    """

    status_code: int = 500

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.error_type: str = self.__class__.__name__
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to JSON-compatible dict for logging."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "status_code": self.status_code,
            "timestamp": self.timestamp,
            "context": {k: str(v) for k, v in self.context.items()},
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def to_response_body(self) -> Dict[str, Any]:
        """The `{error: ...}` envelope returned to API callers."""
        return {"error": self.message}

    def __repr__(self) -> str:
        return f"{self.error_type}: {self.message}"


class QuickFolioValidationError(QuickFolioError):
    """
    Input validation failed (pydantic schema, missing identifier).
    Includes field-level error details when available.
    """

    status_code = 400

    def __init__(self, message: str, **context: Any):
        self.validation_errors: Optional[List[Dict[str, Any]]] = context.get("validation_errors")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["validation_errors"] = self.validation_errors
        return d

    def to_response_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.validation_errors is not None:
            body["details"] = self.validation_errors
        return body


class QuickFolioNotFoundError(QuickFolioError):
    """A record (or a record referenced by the payload) does not exist."""

    status_code = 404

    def __init__(self, message: str, **context: Any):
        self.record_type: Optional[str] = context.get("record_type")
        self.record_id: Optional[str] = context.get("record_id")
        super().__init__(message, **context)


class QuickFolioMethodNotAllowedError(QuickFolioError):
    """HTTP method not supported by a record endpoint."""

    status_code = 405


class QuickFolioRecordError(QuickFolioError):
    """Record operation failed in the datastore (create, update, delete, query)."""

    def __init__(self, message: str, **context: Any):
        self.record_type: Optional[str] = context.get("record_type")
        self.operation: Optional[str] = context.get("operation")
        super().__init__(message, **context)


class QuickFolioConfigError(QuickFolioError):
    """Configuration error — invalid quickfolio.yaml."""
    pass


class QuickFolioClientError(QuickFolioError):
    """Base class for errors raised by the HTTP API client."""
    pass


class QuickFolioAPIError(QuickFolioClientError):
    """The API answered with a non-2xx status."""

    def __init__(self, message: str, **context: Any):
        self.status_code = context.get("status_code", 500)
        self.details: Optional[list] = context.get("details")
        super().__init__(message, **context)


class QuickFolioConnectionError(QuickFolioClientError):
    """The API could not be reached (connection refused, timeout, DNS)."""
    pass
