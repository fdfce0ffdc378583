"""Domain entities describing a batch run and its staged results."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Literal

LogStatus = Literal["info", "success", "error"]


class ProcessStep(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    GENERATING = "generating"
    VERIFYING = "verifying"
    SETTLED = "settled"
    FAILED = "failed"
    FINISHED = "finished"


@dataclass(frozen=True, slots=True)
class LogEntry:
    id: str
    message: str
    status: LogStatus = "info"

    @classmethod
    def create(cls, message: str, status: LogStatus = "info") -> "LogEntry":
        return cls(id=uuid.uuid4().hex, message=message, status=status)


@dataclass(frozen=True, slots=True)
class GroundingSource:
    """A citation returned alongside generated text."""

    uri: str
    title: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "uri": self.uri}


def dedupe_sources(sources: Iterable[GroundingSource]) -> tuple[GroundingSource, ...]:
    """Collapse sources sharing a uri; the first occurrence wins."""

    unique: dict[str, GroundingSource] = {}
    for source in sources:
        if source.uri not in unique:
            unique[source.uri] = source
    return tuple(unique.values())


@dataclass(frozen=True, slots=True)
class PendingUpdate:
    """Generated and verified text waiting for approval."""

    text: str
    sources: tuple[GroundingSource, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "sources": [source.to_dict() for source in self.sources]}


class PendingCache:
    """Staging store holding at most one pending update per record id."""

    def __init__(self) -> None:
        self._entries: dict[str, PendingUpdate] = {}

    def stage(self, record_id: str, update: PendingUpdate) -> None:
        self._entries[record_id] = update

    def get(self, record_id: str) -> PendingUpdate | None:
        return self._entries.get(record_id)

    def evict(self, record_id: str) -> PendingUpdate | None:
        return self._entries.pop(record_id, None)

    def ids(self) -> list[str]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def to_mapping(self) -> dict[str, PendingUpdate]:
        return dict(self._entries)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(slots=True)
class RunStatus:
    """Aggregate progress of the current (or last) batch run."""

    total: int = 0
    current: int = 0
    completed: int = 0
    failed: int = 0
    is_processing: bool = False
    logs: list[LogEntry] = field(default_factory=list)
    current_result: str = ""
    pending_updates: dict[str, PendingUpdate] = field(default_factory=dict)
    step: ProcessStep = ProcessStep.IDLE
    cancelled: bool = False

    def copy(self) -> "RunStatus":
        return replace(self, logs=list(self.logs), pending_updates=dict(self.pending_updates))

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "current": self.current,
            "completed": self.completed,
            "failed": self.failed,
            "is_processing": self.is_processing,
            "logs": [{"id": entry.id, "message": entry.message, "status": entry.status} for entry in self.logs],
            "current_result": self.current_result,
            "pending_updates": {
                record_id: update.to_dict() for record_id, update in self.pending_updates.items()
            },
            "step": self.step.value,
            "cancelled": self.cancelled,
        }
