"""
QuickFolio API Executor — Inbound request pipeline for the record endpoints.

Pipeline (per-request):
    1. OPTIONS pre-flight → 200 with CORS headers, nothing else
    2. Dispatch on method: GET → list/get, POST → create, PUT → update,
       DELETE → delete, anything else → 405
    3. Validate payload (pydantic schemas) and run the service call inside
       one session scope
    4. Shape the ``{data: ...}`` / ``{error: ...}`` envelope
    5. Structured request log entry

Every response carries the configured CORS headers. All exceptions are
caught here so no unformatted error escapes the handler.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, ContextManager, Dict, Optional, Type

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from quickfolio.db.models import File, Folio
from quickfolio.db.session import session_scope
from quickfolio.engine.config import CorsConfig
from quickfolio.engine.errors import (
    QuickFolioError,
    QuickFolioMethodNotAllowedError,
    QuickFolioNotFoundError,
    QuickFolioRecordError,
    QuickFolioValidationError,
)
from quickfolio.engine.logging import log, log_web_api_request
from quickfolio.records.schemas import (
    FileCreate,
    FileUpdate,
    FolioCreate,
    FolioUpdate,
    RecordPayload,
    validate_payload,
)
from quickfolio.services.record_service import RecordService
from quickfolio.services.records import FileService, FolioService

logger = logging.getLogger("quickfolio.api.executor")


# ---------------------------------------------------------------------------
# Request / Response Models
# ---------------------------------------------------------------------------

class APIRequest(BaseModel):
    """Normalized inbound API request (extracted from the Starlette Request)."""

    method: str
    path: str = ""
    query_params: Dict[str, str] = Field(default_factory=dict)
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Any = None


class APIResponse(BaseModel):
    """Normalized outbound API response. ``body`` None means an empty body."""

    status_code: int = 200
    body: Any = None
    headers: Dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Record Handler (one per entity type)
# ---------------------------------------------------------------------------

class RecordHandler:
    """
    Dispatches GET/POST/PUT/DELETE/OPTIONS for one record type.

    Subclasses set the schemas, the service class and the query parameters
    accepted as list filters (query param → service filter field).
    """

    record_name: str = ""
    path: str = ""
    create_schema: Type[RecordPayload] = None
    update_schema: Type[RecordPayload] = None
    service_class: Type[RecordService] = None
    field_map: Dict[str, str] = {}
    list_filters: Dict[str, str] = {}

    def __init__(
        self,
        cors: Optional[CorsConfig] = None,
        scope: Callable[[], ContextManager[Session]] = session_scope,
    ):
        self._cors = cors or CorsConfig()
        self._scope = scope
        self.service = self.service_class()

    @property
    def object_ref(self) -> str:
        return f"web_apis.{self.record_name.lower()}s"

    def cors_headers(self) -> Dict[str, str]:
        return self._cors.headers()

    # -------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------

    def handle(self, request: APIRequest) -> APIResponse:
        """Full pipeline for one request. Never raises."""
        start_time = time.monotonic()
        method = request.method.upper()
        error: Optional[str] = None

        if method == "OPTIONS":
            return APIResponse(status_code=200, headers=self.cors_headers())

        try:
            response = self._dispatch(method, request)

        except QuickFolioRecordError as e:
            logger.exception(f"Datastore failure in {self.path}: {e}")
            error = e.message
            response = APIResponse(status_code=500, body={"error": "Internal server error"})

        except QuickFolioError as e:
            error = e.message
            response = APIResponse(status_code=e.status_code, body=e.to_response_body())

        except Exception as e:
            logger.exception(f"Unhandled error in {method} {self.path}: {e}")
            error = str(e)
            response = APIResponse(status_code=500, body={"error": "Internal server error"})

        response.headers.update(self.cors_headers())

        duration_ms = (time.monotonic() - start_time) * 1000
        log(log_web_api_request(
            object_ref=self.object_ref,
            method=method,
            path=request.path or self.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
            error=error,
        ))
        logger.info(f"{method} {request.path or self.path} → {response.status_code} ({duration_ms:.1f}ms)")
        return response

    def _dispatch(self, method: str, request: APIRequest) -> APIResponse:
        if method == "GET":
            return self.get(request)
        if method == "POST":
            return self.create(request)
        if method == "PUT":
            return self.update(request)
        if method == "DELETE":
            return self.delete(request)
        raise QuickFolioMethodNotAllowedError("Method not allowed", method=method)

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------

    def serialize(self, instance: Any) -> Dict[str, Any]:
        return instance.to_dict()

    def _not_found(self, record_id: Optional[str] = None) -> QuickFolioNotFoundError:
        return QuickFolioNotFoundError(
            f"{self.record_name} not found",
            record_type=self.record_name,
            record_id=record_id,
        )

    def _require_id(self, request: APIRequest) -> str:
        record_id = request.query_params.get("id")
        if not record_id:
            raise QuickFolioValidationError(f"{self.record_name} ID is required")
        return record_id

    # -------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------

    def get(self, request: APIRequest) -> APIResponse:
        record_id = request.query_params.get("id")

        with self._scope() as session:
            if record_id:
                instance = self.service.get(record_id, session=session)
                if instance is None:
                    raise self._not_found(record_id)
                return APIResponse(status_code=200, body={"data": self.serialize(instance)})

            filters = {
                field: request.query_params[param]
                for param, field in self.list_filters.items()
                if request.query_params.get(param)
            }
            records = self.service.list(filters=filters, session=session)
            return APIResponse(
                status_code=200,
                body={"data": [self.serialize(r) for r in records]},
            )

    def create(self, request: APIRequest) -> APIResponse:
        payload = validate_payload(self.create_schema, request.body)

        with self._scope() as session:
            instance = self.create_record(payload, session)
            return APIResponse(status_code=201, body={"data": self.serialize(instance)})

    def create_record(self, payload: RecordPayload, session: Session) -> Any:
        return self.service.create(payload.to_columns(self.field_map), session=session)

    def update(self, request: APIRequest) -> APIResponse:
        record_id = self._require_id(request)
        payload = validate_payload(self.update_schema, request.body)

        with self._scope() as session:
            instance = self.service.update(record_id, payload.to_columns(self.field_map), session=session)
            if instance is None:
                raise self._not_found(record_id)
            return APIResponse(status_code=200, body={"data": self.serialize(instance)})

    def delete(self, request: APIRequest) -> APIResponse:
        record_id = self._require_id(request)

        with self._scope() as session:
            if not self.service.delete(record_id, session=session):
                raise self._not_found(record_id)
        return APIResponse(status_code=204)


class FileHandler(RecordHandler):
    """``/api/files`` — a File is returned with its folios."""

    record_name = "File"
    path = "/api/files"
    create_schema = FileCreate
    update_schema = FileUpdate
    service_class = FileService
    field_map = File.FIELD_MAP
    list_filters = {"folioId": "folio_id"}

    def create_record(self, payload: FileCreate, session: Session) -> File:
        return self.service.create_with_folio(
            payload.to_columns(self.field_map),
            payload.folio_number,
            session=session,
        )


class FolioHandler(RecordHandler):
    """``/api/folios``"""

    record_name = "Folio"
    path = "/api/folios"
    create_schema = FolioCreate
    update_schema = FolioUpdate
    service_class = FolioService
    field_map = Folio.FIELD_MAP
    list_filters = {"fileId": "file_id"}
