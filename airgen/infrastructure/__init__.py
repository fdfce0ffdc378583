"""Infrastructure layer exports."""

from .airtable import AirtableClient
from .connection import STORAGE_KEY, ConnectionStateStore
from .gemini import GeminiClient
from .generation import (
    GenerationClient,
    GenerationResult,
    NoOpGenerationClient,
    configure_generation_client,
    get_generation_client,
)
from .record_store import (
    RecordStore,
    RecordStoreFactory,
    configure_record_store_factory,
    get_record_store_factory,
)

__all__ = [
    "AirtableClient",
    "ConnectionStateStore",
    "GeminiClient",
    "GenerationClient",
    "GenerationResult",
    "NoOpGenerationClient",
    "RecordStore",
    "RecordStoreFactory",
    "STORAGE_KEY",
    "configure_generation_client",
    "configure_record_store_factory",
    "get_generation_client",
    "get_record_store_factory",
]
