"""Integration with the Airtable REST API."""
from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from airgen.core.errors import AuthError, NetworkError, NotFoundError, RecordStoreError
from airgen.core.schema import ConnectionCredentials
from airgen.domain import Record

logger = structlog.get_logger(__name__)

DEFAULT_API_BASE = "https://api.airtable.com/v0"


class AirtableClient:
    """Record store backed by one Airtable table."""

    def __init__(
        self,
        credentials: ConnectionCredentials,
        *,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._credentials = credentials
        base_id = quote(credentials.base_id, safe="")
        table_name = quote(credentials.table_name, safe="")
        self._table_url = f"{api_base.rstrip('/')}/{base_id}/{table_name}"
        self._client = http_client or httpx.Client(timeout=timeout)
        self._owns_client = http_client is None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._credentials.api_key}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _error_message(response: httpx.Response, prefix: str) -> str:
        fallback = f"{prefix} {response.status_code}: {response.reason_phrase}"
        try:
            body = response.json()
        except ValueError:
            text = response.text.strip()
            return f"{fallback} ({text[:100]})" if text else fallback
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            if isinstance(error, str) and error:
                return error
        return fallback

    def _raise_for_status(self, response: httpx.Response, prefix: str) -> None:
        if response.status_code < 400:
            return
        message = self._error_message(response, prefix)
        status = response.status_code
        if status in (401, 403):
            raise AuthError(message, status)
        if status == 404:
            raise NotFoundError(message, status)
        raise RecordStoreError(message, status)

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.request(method, url, headers=self._headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("airtable.request_failed", method=method, error=str(exc))
            raise NetworkError(f"Network error while contacting Airtable: {exc}") from exc

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def fetch(self, limit: int = 100) -> list[Record]:
        response = self._send("GET", self._table_url, params={"maxRecords": limit})
        self._raise_for_status(response, "Airtable Error")
        try:
            payload = response.json()
            records = [Record.from_api(item) for item in payload.get("records") or []]
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning("airtable.unreadable_response", status=response.status_code, error=str(exc))
            raise RecordStoreError("Airtable returned an unreadable response", response.status_code) from exc
        logger.info("airtable.fetched", count=len(records), table=self._credentials.table_name)
        return records

    def update(self, record_id: str, fields: dict[str, Any]) -> None:
        body = {"records": [{"id": record_id, "fields": fields}]}
        response = self._send("PATCH", self._table_url, json=body)
        self._raise_for_status(response, "Airtable Update Error")
        logger.info("airtable.updated", record_id=record_id, fields=sorted(fields))

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


__all__ = ["AirtableClient", "DEFAULT_API_BASE"]
