"""Record store contract and the factory hook used to open connections."""
from __future__ import annotations

from typing import Any, Callable, Protocol

from airgen.core.schema import ConnectionCredentials
from airgen.domain import Record


class RecordStore(Protocol):
    """Persistence contract for the external system of record."""

    def fetch(self, limit: int) -> list[Record]: ...

    def update(self, record_id: str, fields: dict[str, Any]) -> None:
        """Partially update ``record_id``; fields not in ``fields`` are left alone."""

    def close(self) -> None:
        """Release the underlying connection."""


RecordStoreFactory = Callable[[ConnectionCredentials], RecordStore]


def _airtable_factory(credentials: ConnectionCredentials) -> RecordStore:
    from .airtable import AirtableClient

    return AirtableClient(credentials)


_factory: RecordStoreFactory = _airtable_factory


def configure_record_store_factory(factory: RecordStoreFactory) -> None:
    """Install the factory used to open record store connections."""

    global _factory
    _factory = factory


def get_record_store_factory() -> RecordStoreFactory:
    """Return the currently configured record store factory."""

    return _factory
