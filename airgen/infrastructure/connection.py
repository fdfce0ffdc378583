"""Local persistence for the record store connection."""
from __future__ import annotations

import json
from pathlib import Path

import structlog
from pydantic import ValidationError

from airgen.core.schema import ConnectionCredentials

logger = structlog.get_logger(__name__)

STORAGE_KEY = "airgen_studio_config"


class ConnectionStateStore:
    """Small JSON key-value file; credentials live under ``STORAGE_KEY``."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, object]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError):
            logger.warning("connection_state.corrupt", path=str(self._path))
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("connection_state.corrupt", path=str(self._path))
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict[str, object]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

    def load(self) -> ConnectionCredentials | None:
        saved = self._read_all().get(STORAGE_KEY)
        if saved is None:
            return None
        try:
            return ConnectionCredentials.model_validate(saved)
        except ValidationError:
            logger.warning("connection_state.invalid", path=str(self._path))
            return None

    def save(self, credentials: ConnectionCredentials) -> None:
        data = self._read_all()
        data[STORAGE_KEY] = credentials.model_dump()
        self._write_all(data)

    def clear(self) -> None:
        data = self._read_all()
        if STORAGE_KEY in data:
            del data[STORAGE_KEY]
            self._write_all(data)
