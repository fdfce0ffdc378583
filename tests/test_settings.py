from __future__ import annotations

import asyncio
import sys
from datetime import date
from pathlib import Path

from structlog.testing import capture_logs

sys.path.append(str(Path(__file__).resolve().parents[1]))

from airgen.application import StudioService
from airgen.core.blueprints import get_blueprint
from airgen.core.schema import ConnectionCredentials, ProcessMode
from airgen.core.settings import Settings
from airgen.exporters.pending_csv import default_export_name
from airgen.infrastructure import STORAGE_KEY, ConnectionStateStore


def test_settings_read_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("API_KEY", "fallback-key")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("AIRGEN_STATE_PATH", str(tmp_path / "s.json"))
    monkeypatch.setenv("AIRGEN_GENERATION_TIMEOUT", "30")
    monkeypatch.setenv("AIRGEN_SCAN_DELAY", "not-a-number")
    monkeypatch.setenv("AIRGEN_FETCH_LIMIT", "10")
    monkeypatch.setenv("AIRGEN_LOG_JSON", "yes")
    monkeypatch.setenv("API_CORS_ORIGINS", "https://studio.example, ")

    settings = Settings.from_env()

    assert settings.gemini_api_key == "fallback-key"
    assert settings.state_path == tmp_path / "s.json"
    assert settings.generation_timeout == 30.0
    assert settings.scan_delay == 0.8
    assert settings.fetch_limit == 10
    assert settings.log_json is True
    assert settings.cors_origins == ["https://studio.example"]


def test_connection_state_round_trip(tmp_path):
    store = ConnectionStateStore(tmp_path / "nested" / "state.json")
    assert store.load() is None

    credentials = ConnectionCredentials(api_key=" pat ", base_id="appX", table_name="Objects")
    store.save(credentials)
    assert store.load() == ConnectionCredentials(api_key="pat", base_id="appX", table_name="Objects")

    store.clear()
    assert store.load() is None


def test_corrupt_or_invalid_state_is_ignored(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")
    assert ConnectionStateStore(path).load() is None

    path.write_text('{"%s": {"api_key": ""}}' % STORAGE_KEY, encoding="utf-8")
    assert ConnectionStateStore(path).load() is None


def test_blueprints_and_export_name():
    assert get_blueprint("visual-audit").mode == ProcessMode.ANALYZE_IMAGE
    assert get_blueprint("data-enrichment").mode == ProcessMode.GENERATE_CONTENT
    assert get_blueprint("nope") is None
    assert default_export_name(date(2024, 3, 9)) == "airgen_batch_2024-03-09.csv"


def test_unreadable_state_file_is_ignored(tmp_path):
    path = tmp_path / "state.json"
    path.write_bytes(b"\xff\xfe\x00garbage")
    assert ConnectionStateStore(path).load() is None

    # a directory where the file should be cannot be read either
    assert ConnectionStateStore(tmp_path).load() is None


def test_restore_survives_unreadable_state_file(tmp_path):
    path = tmp_path / "state.json"
    path.write_bytes(b"\xff\xfe\x00garbage")
    service = StudioService(connection_store=ConnectionStateStore(path))

    assert asyncio.run(service.restore()) is None
    assert service.is_connected is False


def test_invalid_numeric_env_values_are_reported(monkeypatch):
    monkeypatch.setenv("AIRGEN_VERIFY_DELAY", "slow")
    monkeypatch.setenv("AIRGEN_FETCH_LIMIT", "many")

    with capture_logs() as logs:
        settings = Settings.from_env()

    assert settings.verify_delay == 1.2
    assert settings.fetch_limit == 50
    invalid = [entry for entry in logs if entry["event"] == "settings.invalid_env"]
    assert {entry["name"] for entry in invalid} == {"AIRGEN_VERIFY_DELAY", "AIRGEN_FETCH_LIMIT"}
    assert all(entry["log_level"] == "warning" for entry in invalid)
