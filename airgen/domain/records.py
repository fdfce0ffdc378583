"""Domain entities for records pulled from the record store."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Union


@dataclass(frozen=True, slots=True)
class Attachment:
    """A single file attached to a record field."""

    url: str
    id: str | None = None
    filename: str | None = None
    type: str | None = None
    size: int | None = None

    def to_api(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"url": self.url}
        for key in ("id", "filename", "type", "size"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


@dataclass(frozen=True, slots=True)
class Text:
    value: str

    def render(self) -> str:
        return self.value

    def to_api(self) -> Any:
        return self.value


@dataclass(frozen=True, slots=True)
class Number:
    value: int | float

    def render(self) -> str:
        if isinstance(self.value, float) and self.value.is_integer():
            return str(int(self.value))
        return str(self.value)

    def to_api(self) -> Any:
        return self.value


@dataclass(frozen=True, slots=True)
class Boolean:
    value: bool

    def render(self) -> str:
        return "true" if self.value else "false"

    def to_api(self) -> Any:
        return self.value


@dataclass(frozen=True, slots=True)
class Attachments:
    items: tuple[Attachment, ...]

    @property
    def first_url(self) -> str | None:
        if not self.items:
            return None
        return self.items[0].url or None

    def render(self) -> str:
        return ", ".join(item.filename or item.url for item in self.items)

    def to_api(self) -> Any:
        return [item.to_api() for item in self.items]


@dataclass(frozen=True, slots=True)
class Json:
    """Any structured value that is not an attachment list."""

    value: Any

    def render(self) -> str:
        if isinstance(self.value, list) and all(_is_scalar(item) for item in self.value):
            return ", ".join(render_value(item) for item in self.value)
        return json.dumps(self.value, separators=(",", ":"), ensure_ascii=False)

    def to_api(self) -> Any:
        return self.value


FieldValue = Union[Text, Number, Boolean, Attachments, Json]
_VARIANTS = (Text, Number, Boolean, Attachments, Json)


def _is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def _safe_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _is_attachment_list(raw: Any) -> bool:
    return (
        isinstance(raw, list)
        and bool(raw)
        and all(isinstance(item, dict) and item.get("url") for item in raw)
    )


def to_field_value(raw: Any) -> FieldValue | None:
    """Classify a raw API value into its tagged variant (``None`` when absent)."""

    if raw is None or isinstance(raw, _VARIANTS):
        return raw
    if isinstance(raw, bool):
        return Boolean(raw)
    if isinstance(raw, (int, float)):
        return Number(raw)
    if isinstance(raw, str):
        return Text(raw)
    if _is_attachment_list(raw):
        return Attachments(
            tuple(
                Attachment(
                    url=str(item["url"]),
                    id=item.get("id"),
                    filename=item.get("filename"),
                    type=item.get("type"),
                    size=_safe_int(item.get("size")),
                )
                for item in raw
            )
        )
    return Json(raw)


def render_value(value: Any) -> str:
    """String form used when a value is injected into a prompt."""

    variant = to_field_value(value)
    if variant is None:
        return ""
    return variant.render()


@dataclass(slots=True)
class Record:
    """Local projection of a record owned by the record store."""

    id: str
    created_time: str = ""
    fields: dict[str, FieldValue | None] = field(default_factory=dict)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Record":
        raw_fields = payload.get("fields") or {}
        return cls(
            id=str(payload["id"]),
            created_time=str(payload.get("createdTime") or ""),
            fields={str(name): to_field_value(value) for name, value in raw_fields.items()},
        )

    @property
    def short_id(self) -> str:
        return self.id[-4:]

    def attachment_url(self, field_name: str) -> str | None:
        value = self.fields.get(field_name)
        if isinstance(value, Attachments):
            return value.first_url
        return None

    def merge(self, patch: dict[str, Any]) -> None:
        """Apply a partial update; fields not named in ``patch`` are kept."""

        for name, value in patch.items():
            self.fields[name] = to_field_value(value)

    def to_api(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "createdTime": self.created_time,
            "fields": {
                name: (value.to_api() if value is not None else None)
                for name, value in self.fields.items()
            },
        }


class RecordProjection:
    """Ordered, id-indexed view over the records the studio has loaded."""

    def __init__(self, records: Iterable[Record] = ()) -> None:
        self._records: list[Record] = []
        self._index: dict[str, Record] = {}
        self.replace(records)

    def replace(self, records: Iterable[Record]) -> None:
        self._records = list(records)
        self._index = {record.id: record for record in self._records}

    def clear(self) -> None:
        self.replace(())

    def get(self, record_id: str) -> Record | None:
        return self._index.get(record_id)

    def apply(self, record_id: str, patch: dict[str, Any]) -> bool:
        record = self._index.get(record_id)
        if record is None:
            return False
        record.merge(patch)
        return True

    def field_names(self) -> list[str]:
        names: list[str] = []
        seen: set[str] = set()
        for record in self._records:
            for name in record.fields:
                if name not in seen:
                    seen.add(name)
                    names.append(name)
        return names

    def attachment_field_names(self) -> list[str]:
        return [
            name
            for name in self.field_names()
            if any(record.attachment_url(name) for record in self._records)
        ]

    def to_list(self) -> list[Record]:
        return list(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(list(self._records))

    def __len__(self) -> int:
        return len(self._records)
