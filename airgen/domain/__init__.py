"""Domain layer definitions."""

from .records import (
    Attachment,
    Attachments,
    Boolean,
    FieldValue,
    Json,
    Number,
    Record,
    RecordProjection,
    Text,
    render_value,
    to_field_value,
)
from .runs import (
    GroundingSource,
    LogEntry,
    LogStatus,
    PendingCache,
    PendingUpdate,
    ProcessStep,
    RunStatus,
    dedupe_sources,
)

__all__ = [
    "Attachment",
    "Attachments",
    "Boolean",
    "FieldValue",
    "GroundingSource",
    "Json",
    "LogEntry",
    "LogStatus",
    "Number",
    "PendingCache",
    "PendingUpdate",
    "ProcessStep",
    "Record",
    "RecordProjection",
    "RunStatus",
    "Text",
    "dedupe_sources",
    "render_value",
    "to_field_value",
]
