"""
QuickFolio API Client — synchronous httpx wrapper over /api/files and /api/folios.

Every call returns the unwrapped ``data`` payload. Non-2xx responses raise
QuickFolioAPIError carrying the server's ``error`` message and validation
``details``; transport failures raise QuickFolioConnectionError. Calls are
not retried.

Usage:
    with QuickFolioClient("http://localhost:8000") as client:
        folio = client.create_folio({...})
        client.delete_many("folios", [folio["id"]])
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import httpx

from quickfolio.engine.errors import QuickFolioAPIError, QuickFolioConnectionError
from quickfolio.table.columns import EntityType

logger = logging.getLogger("quickfolio.client")

DEFAULT_TIMEOUT = 30.0


class QuickFolioClient:
    """HTTP client for the QuickFolio record API."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            transport=transport,
            timeout=httpx.Timeout(timeout),
            headers={"Content-Type": "application/json"},
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "QuickFolioClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
    ) -> Any:
        try:
            response = self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise QuickFolioConnectionError(
                f"Could not reach {self.base_url}: {e}",
                method=method,
                path=path,
            ) from e

        if response.status_code == 204:
            return None

        try:
            body = response.json() if response.content else {}
        except ValueError:
            body = {}

        if not response.is_success:
            message = body.get("error") if isinstance(body, dict) else None
            raise QuickFolioAPIError(
                message or f"HTTP {response.status_code}",
                status_code=response.status_code,
                details=body.get("details") if isinstance(body, dict) else None,
                method=method,
                path=path,
            )

        logger.debug(f"{method} {path} → {response.status_code}")
        return body.get("data") if isinstance(body, dict) else body

    @staticmethod
    def _path(entity: EntityType) -> str:
        return f"/api/{EntityType(entity).plural}"

    # -------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------

    def list_files(self, folio_id: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"folioId": folio_id} if folio_id else None
        return self._request("GET", "/api/files", params=params)

    def get_file(self, file_id: str) -> Dict[str, Any]:
        return self._request("GET", "/api/files", params={"id": file_id})

    def create_file(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/api/files", json=data)

    def update_file(self, file_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", "/api/files", params={"id": file_id}, json=data)

    def delete_file(self, file_id: str) -> None:
        self._request("DELETE", "/api/files", params={"id": file_id})

    # -------------------------------------------------------------------
    # Folios
    # -------------------------------------------------------------------

    def list_folios(self, file_id: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"fileId": file_id} if file_id else None
        return self._request("GET", "/api/folios", params=params)

    def get_folio(self, folio_id: str) -> Dict[str, Any]:
        return self._request("GET", "/api/folios", params={"id": folio_id})

    def create_folio(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/api/folios", json=data)

    def update_folio(self, folio_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", "/api/folios", params={"id": folio_id}, json=data)

    def delete_folio(self, folio_id: str) -> None:
        self._request("DELETE", "/api/folios", params={"id": folio_id})

    # -------------------------------------------------------------------
    # Bulk
    # -------------------------------------------------------------------

    def delete_many(self, entity: EntityType, record_ids: Iterable[str]) -> List[str]:
        """
        Delete records one by one, stopping at the first failure.

        Returns the ids deleted. The raised error carries ``deleted`` with the
        ids removed before the failure.
        """
        path = self._path(entity)
        deleted: List[str] = []
        for record_id in record_ids:
            try:
                self._request("DELETE", path, params={"id": record_id})
            except (QuickFolioAPIError, QuickFolioConnectionError) as e:
                e.context["deleted"] = list(deleted)
                raise
            deleted.append(record_id)
        logger.info(f"Deleted {len(deleted)} {EntityType(entity).plural}")
        return deleted
