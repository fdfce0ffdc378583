import csv
import io
import json
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))

from airgen.core.errors import AuthError, NotFoundError, RecordStoreError
from airgen.domain import Record
from airgen.infrastructure import GenerationResult, STORAGE_KEY, generation, record_store

CREDENTIALS = {"api_key": "pat123", "base_id": "appBASE", "table_name": "Objects"}

RECORDS = [
    {
        "id": "recA0001",
        "createdTime": "2024-01-01T00:00:00.000Z",
        "fields": {
            "Name": "Chair",
            "Description": "An old chair",
            "Photo": [{"url": "https://cdn.example/chair.jpg", "filename": "chair.jpg"}],
        },
    },
    {
        "id": "recA0002",
        "createdTime": "2024-01-02T00:00:00.000Z",
        "fields": {"Name": "Lamp", "Description": "A lamp"},
    },
]


class FakeStore:
    def __init__(self, fetch_error: Exception | None = None, update_error: Exception | None = None):
        self.fetch_error = fetch_error
        self.update_error = update_error
        self.updates: list[tuple[str, dict]] = []
        self.closed = False

    def fetch(self, limit):
        if self.fetch_error is not None:
            raise self.fetch_error
        return [Record.from_api(json.loads(json.dumps(item))) for item in RECORDS[:limit]]

    def update(self, record_id, fields):
        if self.update_error is not None:
            raise self.update_error
        self.updates.append((record_id, dict(fields)))

    def close(self):
        self.closed = True


class FakeGenerator:
    def analyze_image(self, image_url, prompt):
        return GenerationResult(text=f"Verified: {prompt}")

    def generate_text(self, prompt):
        return GenerationResult(text=f"Verified: {prompt}")


@pytest.fixture()
def env(tmp_path, monkeypatch):
    monkeypatch.setenv("AIRGEN_STATE_PATH", str(tmp_path / "state.json"))
    monkeypatch.setenv("AIRGEN_EXPORT_ROOT", str(tmp_path / "exports"))
    for name in ("AIRGEN_SCAN_DELAY", "AIRGEN_VERIFY_DELAY", "AIRGEN_COOLDOWN_DELAY"):
        monkeypatch.setenv(name, "0")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
    return tmp_path


def _build_app(monkeypatch, store: FakeStore):
    from airgen.app import create_app

    app = create_app()
    # create_app installs the real factories; swap in fakes afterwards
    monkeypatch.setattr(record_store, "_factory", lambda credentials: store)
    monkeypatch.setattr(generation, "_client", FakeGenerator())
    return app


def _image_run_payload() -> dict:
    return {
        "mode": "ANALYZE_IMAGE",
        "image_field": "Photo",
        "text_fields": ["Name"],
        "output_field": "AI Description",
        "prompt_template": "Describe {Name}",
    }


def test_end_to_end_workflow(env, monkeypatch):
    store = FakeStore()
    app = _build_app(monkeypatch, store)

    with TestClient(app) as client:
        assert client.get("/api/connection").json() == {"connected": False}
        assert client.get("/api/records").status_code == 409
        assert client.post("/api/runs", json=_image_run_payload()).status_code == 409

        # 1. connect
        response = client.post("/api/connection", json=CREDENTIALS)
        assert response.status_code == 200
        assert response.json()["records"] == 2
        saved = json.loads((env / "state.json").read_text(encoding="utf-8"))
        assert saved[STORAGE_KEY] == CREDENTIALS

        records = client.get("/api/records").json()
        assert records["fields"] == ["Name", "Description", "Photo"]
        assert records["image_fields"] == ["Photo"]
        assert [item["id"] for item in records["items"]] == ["recA0001", "recA0002"]

        blueprints = client.get("/api/blueprints").json()["items"]
        assert [item["id"] for item in blueprints] == ["product-desc", "visual-audit", "data-enrichment"]

        # 2. run the batch; the lamp has no photo
        response = client.post("/api/runs", json=_image_run_payload())
        assert response.status_code == 200
        body = response.json()
        status = body["status"]
        assert body["review_ready"] is True
        assert status["total"] == 2
        assert status["completed"] == 1
        assert status["failed"] == 1
        assert status["is_processing"] is False
        assert list(status["pending_updates"]) == ["recA0001"]

        # 3. review
        pending = client.get("/api/pending").json()
        assert pending["count"] == 1
        item = pending["items"][0]
        assert item["record_id"] == "recA0001"
        assert item["text"] == "Verified: Describe Chair"
        assert item["image_url"] == "https://cdn.example/chair.jpg"

        export = client.get("/api/pending/export")
        assert export.status_code == 200
        rows = list(csv.DictReader(io.StringIO(export.text)))
        assert rows == [
            {
                "Record ID": "recA0001",
                "Original Description": "An old chair",
                "AI Verified Description": "Verified: Describe Chair",
                "Sources": "",
            }
        ]
        assert list((env / "exports").glob("airgen_batch_*.csv"))

        # 4. commit
        assert client.post("/api/pending/recA0002/commit").status_code == 404
        response = client.post("/api/pending/commit")
        assert response.status_code == 200
        assert response.json() == {"remaining": [], "count": 0}
        assert store.updates == [("recA0001", {"AI Description": "Verified: Describe Chair"})]

        records = client.get("/api/records").json()["items"]
        assert records[0]["fields"]["AI Description"] == "Verified: Describe Chair"
        logs = client.get("/api/runs/status").json()["status"]["logs"]
        assert logs[-1]["message"] == "Curation phase finalized: 1 committed, 0 failed."

        # 5. logout forgets the connection
        assert client.delete("/api/connection").json() == {"connected": False}
        saved = json.loads((env / "state.json").read_text(encoding="utf-8"))
        assert STORAGE_KEY not in saved


def test_run_config_is_validated(env, monkeypatch):
    app = _build_app(monkeypatch, FakeStore())

    with TestClient(app) as client:
        client.post("/api/connection", json=CREDENTIALS)
        payload = _image_run_payload()
        payload["image_field"] = ""
        assert client.post("/api/runs", json=payload).status_code == 422
        payload = _image_run_payload()
        payload["output_field"] = "   "
        assert client.post("/api/runs", json=payload).status_code == 422


@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (AuthError("Invalid token", 401), 401),
        (NotFoundError("Table not found", 404), 404),
        (RecordStoreError("Airtable Error 500: Internal Server Error", 500), 502),
    ],
)
def test_connection_errors_map_to_status(env, monkeypatch, error, status_code):
    app = _build_app(monkeypatch, FakeStore(fetch_error=error))

    with TestClient(app) as client:
        response = client.post("/api/connection", json=CREDENTIALS)
        assert response.status_code == status_code
        assert response.json()["detail"] == error.message
        assert client.get("/api/connection").json() == {"connected": False}
    assert not (env / "state.json").exists()


def test_failed_commit_stays_pending(env, monkeypatch):
    store = FakeStore(update_error=RecordStoreError("INVALID_VALUE_FOR_COLUMN", 422))
    app = _build_app(monkeypatch, store)

    with TestClient(app) as client:
        client.post("/api/connection", json=CREDENTIALS)
        client.post("/api/runs", json=_image_run_payload())

        response = client.post("/api/pending/recA0001/commit")
        assert response.status_code == 502
        assert response.json()["detail"] == "recA0001: INVALID_VALUE_FOR_COLUMN"
        assert client.get("/api/pending").json()["count"] == 1


def test_saved_connection_is_restored_silently(env, monkeypatch):
    (env / "state.json").write_text(json.dumps({STORAGE_KEY: CREDENTIALS}), encoding="utf-8")
    app = _build_app(monkeypatch, FakeStore())

    with TestClient(app) as client:
        connection = client.get("/api/connection").json()
        assert connection["connected"] is True
        assert connection["records"] == 2
        logs = client.get("/api/runs/status").json()["status"]["logs"]
        assert logs == []


def test_rejected_saved_connection_is_forgotten(env, monkeypatch):
    (env / "state.json").write_text(
        json.dumps({STORAGE_KEY: CREDENTIALS, "other": 1}),
        encoding="utf-8",
    )
    app = _build_app(monkeypatch, FakeStore(fetch_error=AuthError("Invalid token", 401)))

    with TestClient(app) as client:
        assert client.get("/api/connection").json() == {"connected": False}

    saved = json.loads((env / "state.json").read_text(encoding="utf-8"))
    assert saved == {"other": 1}


def test_cancel_without_run_reports_false(env, monkeypatch):
    app = _build_app(monkeypatch, FakeStore())

    with TestClient(app) as client:
        assert client.post("/api/runs/cancel").json() == {"cancelled": False}
