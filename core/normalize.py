from __future__ import annotations

import math
import re
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from core.errors import UnparseableValue


# Columns whose largest magnitude is at or below this are read as proportions (0.05 == 5%).
PROPORTION_THRESHOLD = 1.5

AGGREGATE_LABELS = frozenset({"overall", "total", "all", "grand total", "overall total"})

_ASCII_LOWER = str.maketrans("ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz")
_LEGAL_SUFFIX_RE = re.compile(r"\b(?:inc|llc|l\.l\.c|ltd|co|corp|corporation|company|holdings)\b\.?")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_THOUSANDS_RE = re.compile(r"^[+-]?\d{1,3}(,\d{3})+(\.\d*)?$")


def _parse_number(raw: object) -> float:
    if raw is None or isinstance(raw, bool):
        raise UnparseableValue(repr(raw))
    if isinstance(raw, str):
        s = raw.strip()
        if "_" in s:
            raise UnparseableValue(repr(raw))
        if _THOUSANDS_RE.match(s):
            s = s.replace(",", "")
        try:
            value = float(s)
        except ValueError as exc:
            raise UnparseableValue(repr(raw)) from exc
    else:
        try:
            missing = pd.isna(raw)
        except (TypeError, ValueError) as exc:
            raise UnparseableValue(repr(raw)) from exc
        if missing is True:
            raise UnparseableValue(repr(raw))
        try:
            value = float(raw)  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise UnparseableValue(repr(raw)) from exc
    if math.isnan(value) or math.isinf(value):
        raise UnparseableValue(repr(raw))
    return value


def to_number(raw: object) -> Optional[float]:
    """Coerce a raw cell to a finite float, or None. Never raises."""
    try:
        return _parse_number(raw)
    except UnparseableValue:
        return None


def to_percent(values: Sequence[float]) -> List[float]:
    """Scale a whole column of proportions to percentages.

    The decision is made once for the column: a single value above the
    threshold keeps every value as-is.
    """
    values = [float(v) for v in values]
    if not values:
        return []
    max_abs = max(abs(v) for v in values)
    if math.isfinite(max_abs) and max_abs <= PROPORTION_THRESHOLD:
        return [v * 100 for v in values]
    return values


def is_aggregate_label(value: object) -> bool:
    if value is None:
        return False
    s = " ".join(str(value).split()).translate(_ASCII_LOWER)
    return s in AGGREGATE_LABELS


def normalize_key(value: object) -> str:
    """Canonical form of an entity name used to join tables.

    "Acme Inc." and "ACME, INC" both become "acme"; "&" reads as "and".
    """
    if value is None:
        return ""
    s = str(value).strip().translate(_ASCII_LOWER)
    s = s.replace("&", " and ")
    s = _LEGAL_SUFFIX_RE.sub("", s)
    s = _NON_ALNUM_RE.sub(" ", s)
    return s.strip()


def numericize(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = df[col].map(to_number).astype("float64")
    return df


def coerce_str_safe(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            series = df[col]
            if isinstance(series, pd.DataFrame):
                series = series.iloc[:, 0]
            series = series.astype("string").str.strip()
            series = series.replace({"nan": pd.NA, "None": pd.NA, "": pd.NA})
            df[col] = series
    return df
