from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Iterable, Mapping

from airgen.core.csvio import write_records_to_csv
from airgen.domain import PendingUpdate, Record, render_value

COLUMNS = ["Record ID", "Original Description", "AI Verified Description", "Sources"]


def default_export_name(today: date | None = None) -> str:
    return f"airgen_batch_{(today or date.today()).isoformat()}.csv"


def export_pending_drafts(
    path: Path,
    records: Iterable[Record],
    pending: Mapping[str, PendingUpdate],
    *,
    original_field: str = "Description",
) -> Path:
    rows = []
    for record in records:
        draft = pending.get(record.id)
        if draft is None:
            continue
        rows.append(
            {
                "Record ID": record.id,
                "Original Description": render_value(record.fields.get(original_field)),
                "AI Verified Description": draft.text,
                "Sources": "; ".join(source.uri for source in draft.sources),
            }
        )
    return write_records_to_csv(path, rows, columns=COLUMNS)
