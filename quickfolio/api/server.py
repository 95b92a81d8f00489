"""
QuickFolio HTTP Server — FastAPI application exposing the record endpoints.

Routes:
    /api/files   — every method, dispatched by FileHandler
    /api/folios  — every method, dispatched by FolioHandler
    /health      — liveness + database reachability
    OPTIONS on any other path answers 200 with the CORS headers

Run:
    quickfolio serve
or:
    uvicorn quickfolio.api.server:app --port 8000
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from quickfolio import __version__
from quickfolio.api.executor import APIRequest, APIResponse, FileHandler, FolioHandler, RecordHandler
from quickfolio.db.base import engine_registry
from quickfolio.db.session import ENGINE_NAME, close_all_sessions, init_db, is_initialized
from quickfolio.engine.config import QuickFolioConfig, get_config
from quickfolio.engine.logging import configure_logging, init_logging, log, log_system_event, shutdown_logging

logger = logging.getLogger("quickfolio.api.server")


async def _to_api_request(request: Request) -> APIRequest:
    body = None
    if request.method in ("POST", "PUT", "PATCH"):
        raw = await request.body()
        if raw:
            body = json.loads(raw)
    return APIRequest(
        method=request.method,
        path=request.url.path,
        query_params=dict(request.query_params),
        headers=dict(request.headers),
        body=body,
    )


def _to_response(api_response: APIResponse) -> Response:
    if api_response.body is None:
        return Response(status_code=api_response.status_code, headers=api_response.headers)
    return JSONResponse(
        content=api_response.body,
        status_code=api_response.status_code,
        headers=api_response.headers,
    )


def _mount(app: FastAPI, handler: RecordHandler) -> None:
    async def endpoint(request: Request) -> Response:
        try:
            api_request = await _to_api_request(request)
        except ValueError:
            return JSONResponse(
                content={"error": "Validation failed", "details": [
                    {"path": [], "message": "Request body is not valid JSON", "code": "json_invalid"},
                ]},
                status_code=400,
                headers=handler.cors_headers(),
            )
        return _to_response(await run_in_threadpool(handler.handle, api_request))

    # methods=None: the handler answers every verb, including its own 405
    app.add_route(
        handler.path,
        endpoint,
        methods=None,
        name=f"{handler.record_name.lower()}s",
    )


def create_app(
    config: Optional[QuickFolioConfig] = None,
    init_database: bool = True,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Explicit config; defaults to the loaded quickfolio.yaml.
        init_database: Initialise the engine from ``config.database``. Pass
            False when the caller already called ``init_db()``.
    """
    config = config or get_config()
    configure_logging(config.logging.level)

    if init_database or not is_initialized():
        init_db(
            config.database.url,
            create_tables=config.database.create_tables,
            pool_size=config.database.pool_size,
            max_overflow=config.database.max_overflow,
            pool_timeout=config.database.pool_timeout,
            pool_recycle=config.database.pool_recycle,
            pool_pre_ping=config.database.pool_pre_ping,
        )

    started_at = datetime.now(timezone.utc)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if config.logging.structured:
            queue_cfg = config.logging.async_queue
            init_logging(
                log_dir=config.logging.directory,
                flush_interval_ms=queue_cfg.flush_interval_ms,
                flush_batch_size=queue_cfg.flush_batch_size,
                max_queue_size=queue_cfg.max_queue_size,
            )
        log(log_system_event("server_started", details={"version": __version__}))
        yield
        log(log_system_event("server_stopped"))
        shutdown_logging()
        if init_database:
            close_all_sessions()

    app = FastAPI(
        title=config.name,
        description="Files and Folios records API",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.file_handler = FileHandler(cors=config.api.cors)
    app.state.folio_handler = FolioHandler(cors=config.api.cors)
    _mount(app, app.state.file_handler)
    _mount(app, app.state.folio_handler)

    @app.get("/health")
    async def health_check():
        """Liveness plus database reachability."""
        database_ok = engine_registry.health_check(ENGINE_NAME)
        uptime = (datetime.now(timezone.utc) - started_at).total_seconds()
        return {
            "status": "healthy" if database_ok else "degraded",
            "version": __version__,
            "database": database_ok,
            "uptime_seconds": round(uptime, 2),
        }

    @app.options("/{path:path}", include_in_schema=False)
    async def preflight(path: str) -> Response:
        return Response(status_code=200, headers=config.api.cors.headers())

    return app


def __getattr__(name: str):
    # `uvicorn quickfolio.api.server:app` builds the app lazily from quickfolio.yaml
    if name == "app":
        return create_app()
    raise AttributeError(name)
