from __future__ import annotations

import json
import sys
from pathlib import Path

import httpx
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from airgen.core.errors import AuthError, NetworkError, NotFoundError, RecordStoreError
from airgen.core.schema import ConnectionCredentials
from airgen.domain import Attachments
from airgen.infrastructure.airtable import AirtableClient


def _client(handler) -> AirtableClient:
    credentials = ConnectionCredentials(api_key="pat123", base_id="appBASE", table_name="Art Objects")
    http_client = httpx.Client(transport=httpx.MockTransport(handler))
    return AirtableClient(credentials, http_client=http_client)


def test_fetch_parses_records():
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["path"] = request.url.path
        captured["params"] = dict(request.url.params)
        captured["auth"] = request.headers["Authorization"]
        return httpx.Response(
            200,
            json={
                "records": [
                    {
                        "id": "recA0001",
                        "createdTime": "2024-01-01T00:00:00.000Z",
                        "fields": {"Name": "Chair", "Photo": [{"url": "https://cdn.example/1.jpg"}]},
                    }
                ]
            },
        )

    records = _client(handler).fetch(limit=5)

    assert captured["method"] == "GET"
    assert captured["path"] == "/v0/appBASE/Art Objects"
    assert captured["params"] == {"maxRecords": "5"}
    assert captured["auth"] == "Bearer pat123"
    assert [record.id for record in records] == ["recA0001"]
    assert isinstance(records[0].fields["Photo"], Attachments)


def test_update_sends_partial_patch():
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["body"] = json.loads(request.content.decode("utf-8"))
        return httpx.Response(200, json={"records": []})

    _client(handler).update("recA0001", {"AI Description": "text"})

    assert captured["method"] == "PATCH"
    assert captured["body"] == {"records": [{"id": "recA0001", "fields": {"AI Description": "text"}}]}


@pytest.mark.parametrize(
    ("status", "body", "error_type", "message"),
    [
        (401, {"error": {"type": "AUTHENTICATION_REQUIRED", "message": "Invalid token"}}, AuthError, "Invalid token"),
        (403, {"error": {"message": "Forbidden base"}}, AuthError, "Forbidden base"),
        (404, {"error": "NOT_FOUND"}, NotFoundError, "NOT_FOUND"),
        (409, {"error": {"type": "CONFLICT"}}, RecordStoreError, "Airtable Error 409: Conflict"),
    ],
)
def test_error_responses_map_to_typed_errors(status, body, error_type, message):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=body)

    with pytest.raises(error_type) as excinfo:
        _client(handler).fetch()

    assert excinfo.value.message == message
    assert excinfo.value.status_code == status


def test_non_json_error_includes_body_excerpt():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="upstream exploded")

    with pytest.raises(RecordStoreError) as excinfo:
        _client(handler).update("recA0001", {"AI": "x"})

    assert excinfo.value.message == "Airtable Update Error 500: Internal Server Error (upstream exploded)"


def test_transport_failure_is_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkError):
        _client(handler).fetch()


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>maintenance</html>", headers={"content-type": "text/html"}),
        httpx.Response(200, json={"records": [{"fields": {"Name": "Chair"}}]}),
        httpx.Response(200, json=["not", "an", "object"]),
    ],
)
def test_unreadable_success_body_is_store_error(response):
    def handler(request: httpx.Request) -> httpx.Response:
        return response

    with pytest.raises(RecordStoreError) as excinfo:
        _client(handler).fetch()

    assert excinfo.value.message == "Airtable returned an unreadable response"
    assert excinfo.value.status_code == 200


def test_close_releases_owned_http_client():
    credentials = ConnectionCredentials(api_key="pat123", base_id="appBASE", table_name="Objects")
    client = AirtableClient(credentials)

    client.close()

    assert client._client.is_closed
