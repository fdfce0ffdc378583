from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence

import pandas as pd


def write_records_to_csv(path: Path, rows: Iterable[dict], columns: Sequence[str] | None = None) -> Path:
    df = pd.DataFrame(list(rows), columns=list(columns) if columns is not None else None)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return path
