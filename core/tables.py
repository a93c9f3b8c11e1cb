from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Sequence, Union

import pandas as pd


@dataclass(frozen=True)
class TableData:
    """A parsed row set with its header row, values kept as raw strings."""

    columns: List[str]
    rows: List[Dict[str, str]] = field(default_factory=list)
    name: str = "table"

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def empty(self) -> bool:
        return not self.rows

    def to_frame(self) -> pd.DataFrame:
        if not self.rows:
            return pd.DataFrame(columns=list(self.columns), dtype=object)
        return pd.DataFrame.from_records(self.rows, columns=list(self.columns))

    @classmethod
    def from_frame(cls, df: pd.DataFrame, name: str = "table") -> "TableData":
        columns = [str(c).strip() for c in df.columns]
        frame = df.copy()
        frame.columns = columns
        frame = frame.astype(object).where(frame.notna(), "")
        rows = [{k: ("" if v is None else str(v)) for k, v in rec.items()} for rec in frame.to_dict(orient="records")]
        return cls(columns=columns, rows=rows, name=name)

    @classmethod
    def from_records(
        cls, rows: Sequence[Mapping[str, object]], columns: Sequence[str] | None = None, name: str = "table"
    ) -> "TableData":
        if columns is None:
            seen: Dict[str, None] = {}
            for r in rows:
                for k in r.keys():
                    seen.setdefault(str(k), None)
            columns = list(seen)
        out = [{str(c): ("" if r.get(c) is None else str(r.get(c))) for c in columns} for r in rows]
        return cls(columns=[str(c) for c in columns], rows=out, name=name)


def read_table(path: Union[str, Path], name: str | None = None) -> TableData:
    """Read a CSV export as strings; typing happens later in the normalizer.

    A zero-byte or header-less file yields an empty table.
    """
    path = Path(path)
    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False, skipinitialspace=True)
    except pd.errors.EmptyDataError:
        return TableData(columns=[], rows=[], name=name or path.name)
    df = df.loc[:, ~df.columns.duplicated()]
    return TableData.from_frame(df, name=name or path.name)
