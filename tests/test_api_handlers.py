"""Tests for quickfolio.api.executor — RecordHandler dispatch against SQLite."""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from quickfolio.api.executor import APIRequest, FileHandler, FolioHandler
from quickfolio.engine.config import CorsConfig
from quickfolio.engine.errors import QuickFolioRecordError

CORS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


@pytest.fixture
def folio_handler(db):
    return FolioHandler()


@pytest.fixture
def file_handler(db):
    return FileHandler()


def _req(method, body=None, **params):
    return APIRequest(method=method, query_params=params, body=body)


def _create(handler, body):
    response = handler.handle(_req("POST", body))
    assert response.status_code == 201, response.body
    return response.body["data"]


class TestDispatch:
    def test_options(self, folio_handler):
        response = folio_handler.handle(_req("OPTIONS"))
        assert response.status_code == 200
        assert response.body is None
        assert response.headers == CORS

    def test_method_not_allowed(self, folio_handler):
        response = folio_handler.handle(_req("PATCH", {}))
        assert response.status_code == 405
        assert response.body == {"error": "Method not allowed"}
        assert response.headers == CORS

    def test_cors_on_errors(self, folio_handler):
        response = folio_handler.handle(_req("GET", id="missing"))
        assert response.status_code == 404
        assert response.headers == CORS

    def test_custom_cors(self, db):
        handler = FolioHandler(cors=CorsConfig(allow_origin="https://app.example.org"))
        response = handler.handle(_req("GET"))
        assert response.headers["Access-Control-Allow-Origin"] == "https://app.example.org"

    def test_unexpected_error_is_500(self, folio_handler):
        folio_handler.service = MagicMock()
        folio_handler.service.list.side_effect = RuntimeError("boom")
        response = folio_handler.handle(_req("GET"))
        assert response.status_code == 500
        assert response.body == {"error": "Internal server error"}
        assert response.headers == CORS

    def test_datastore_error_is_500(self, folio_handler):
        folio_handler.service = MagicMock()
        folio_handler.service.get.side_effect = QuickFolioRecordError("get failed", operation="get")
        response = folio_handler.handle(_req("GET", id="x"))
        assert response.status_code == 500
        assert response.body == {"error": "Internal server error"}


class TestFolios:
    def test_create_then_get(self, folio_handler, folio_body):
        created = _create(folio_handler, folio_body)
        assert created["item"] == folio_body["item"]
        assert created["createdAt"] == created["updatedAt"]
        assert created["fileId"] is None

        response = folio_handler.handle(_req("GET", id=created["id"]))
        assert response.status_code == 200
        assert response.body["data"] == created

    def test_list_newest_first(self, folio_handler, folio_body):
        first = _create(folio_handler, dict(folio_body, item="A/1"))
        second = _create(folio_handler, dict(folio_body, item="A/2"))
        response = folio_handler.handle(_req("GET"))
        ids = [f["id"] for f in response.body["data"]]
        assert set(ids) == {first["id"], second["id"]}
        created = [datetime.fromisoformat(f["createdAt"]) for f in response.body["data"]]
        assert created == sorted(created, reverse=True)

    def test_list_empty(self, folio_handler):
        response = folio_handler.handle(_req("GET"))
        assert response.status_code == 200
        assert response.body == {"data": []}

    def test_create_invalid_letter_date(self, folio_handler, folio_body):
        folio_body["letterDate"] = "15/01/2024"
        response = folio_handler.handle(_req("POST", folio_body))
        assert response.status_code == 400
        assert response.body["error"] == "Validation failed"
        assert response.body["details"][0]["path"] == ["letterDate"]

    def test_create_non_object_body(self, folio_handler):
        response = folio_handler.handle(_req("POST", "not an object"))
        assert response.status_code == 400
        assert response.body["error"] == "Validation failed"

    def test_create_with_unknown_file(self, folio_handler, folio_body):
        response = folio_handler.handle(_req("POST", dict(folio_body, fileId="missing")))
        assert response.status_code == 404
        assert response.body == {"error": "File not found"}

    def test_update_unknown_id(self, folio_handler):
        response = folio_handler.handle(_req("PUT", {"item": "X/1"}, id="nonexistent"))
        assert response.status_code == 404
        assert response.body == {"error": "Folio not found"}

    def test_update_requires_id(self, folio_handler):
        response = folio_handler.handle(_req("PUT", {"item": "X/1"}))
        assert response.status_code == 400
        assert response.body == {"error": "Folio ID is required"}

    def test_update_partial(self, folio_handler, folio_body):
        created = _create(folio_handler, folio_body)
        response = folio_handler.handle(_req("PUT", {"description": "Revised"}, id=created["id"]))
        assert response.status_code == 200
        updated = response.body["data"]
        assert updated["description"] == "Revised"
        for key in ("item", "runningNo", "draftedBy", "letterDate", "createdAt"):
            assert updated[key] == created[key]
        assert datetime.fromisoformat(updated["updatedAt"]) > datetime.fromisoformat(created["updatedAt"])

    def test_update_rejects_null_item(self, folio_handler, folio_body):
        created = _create(folio_handler, folio_body)
        response = folio_handler.handle(_req("PUT", {"item": None}, id=created["id"]))
        assert response.status_code == 400

    def test_delete_then_get(self, folio_handler, folio_body):
        created = _create(folio_handler, folio_body)
        response = folio_handler.handle(_req("DELETE", id=created["id"]))
        assert response.status_code == 204
        assert response.body is None
        assert folio_handler.handle(_req("GET", id=created["id"])).status_code == 404
        assert folio_handler.handle(_req("DELETE", id=created["id"])).status_code == 404

    def test_delete_requires_id(self, folio_handler):
        response = folio_handler.handle(_req("DELETE"))
        assert response.status_code == 400
        assert response.body == {"error": "Folio ID is required"}


class TestFiles:
    def test_create_missing_name(self, file_handler, file_body):
        del file_body["name"]
        response = file_handler.handle(_req("POST", file_body))
        assert response.status_code == 400
        assert any("name" in d["path"] for d in response.body["details"])

    def test_create_with_folio_number(self, file_handler, folio_handler, file_body, folio_body):
        folio = _create(folio_handler, folio_body)
        created = _create(file_handler, dict(file_body, folioNumber=folio_body["item"]))
        assert [f["id"] for f in created["folios"]] == [folio["id"]]

        fetched = folio_handler.handle(_req("GET", id=folio["id"])).body["data"]
        assert fetched["fileId"] == created["id"]

    def test_create_with_unknown_folio_number(self, file_handler, file_body):
        response = file_handler.handle(_req("POST", dict(file_body, folioNumber="nope")))
        assert response.status_code == 404
        assert response.body == {"error": "Folio not found"}
        assert file_handler.handle(_req("GET")).body == {"data": []}

    def test_get_includes_folios(self, file_handler, folio_handler, file_body, folio_body):
        file = _create(file_handler, file_body)
        _create(folio_handler, dict(folio_body, fileId=file["id"]))
        fetched = file_handler.handle(_req("GET", id=file["id"])).body["data"]
        assert [f["item"] for f in fetched["folios"]] == [folio_body["item"]]

    def test_list_by_folio(self, file_handler, folio_handler, file_body, folio_body):
        wanted = _create(file_handler, dict(file_body, name="Wanted"))
        _create(file_handler, dict(file_body, name="Other"))
        folio = _create(folio_handler, dict(folio_body, fileId=wanted["id"]))
        listed = file_handler.handle(_req("GET", folioId=folio["id"])).body["data"]
        assert [f["name"] for f in listed] == ["Wanted"]

    def test_update_file(self, file_handler, file_body):
        created = _create(file_handler, file_body)
        response = file_handler.handle(_req("PUT", {"name": "Renamed"}, id=created["id"]))
        assert response.status_code == 200
        assert response.body["data"]["name"] == "Renamed"
        assert response.body["data"]["createdBy"] == created["createdBy"]

    def test_update_unknown_file(self, file_handler):
        response = file_handler.handle(_req("PUT", {"name": "Renamed"}, id="missing"))
        assert response.status_code == 404
        assert response.body == {"error": "File not found"}

    def test_delete_file_orphans_folios(self, file_handler, folio_handler, file_body, folio_body):
        file = _create(file_handler, file_body)
        folio = _create(folio_handler, dict(folio_body, fileId=file["id"]))
        assert file_handler.handle(_req("DELETE", id=file["id"])).status_code == 204
        survivor = folio_handler.handle(_req("GET", id=folio["id"]))
        assert survivor.status_code == 200
        assert survivor.body["data"]["fileId"] is None
