from __future__ import annotations

from typing import Iterable, Optional


class ReconcileError(Exception):
    """Fatal problem with a mandatory input table; no chart can be built."""


class ColumnNotFound(ReconcileError):
    def __init__(self, candidates: Iterable[str], columns: Iterable[str], table: Optional[str] = None) -> None:
        self.candidates = list(candidates)
        self.columns = list(columns)
        self.table = table
        where = f" in {table}" if table else ""
        super().__init__(
            f"Could not find a column{where} matching any of: {', '.join(self.candidates)}. "
            f"Found: {', '.join(self.columns)}"
        )


class EmptyDataset(ReconcileError):
    def __init__(self, table: str, detail: str = "has no rows") -> None:
        self.table = table
        super().__init__(f"{table} {detail}.")


class UnparseableValue(ValueError):
    """A cell that could not be read as a number. Recorded, never fatal."""


class InvalidTransition(Exception):
    """Selection event not allowed from the current state."""
