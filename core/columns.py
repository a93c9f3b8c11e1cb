from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from core.errors import ColumnNotFound


CATEGORY_NAME_CANDIDATES = ("vertical", "vert", "category", "name")
CATEGORY_CHANGE_CANDIDATES = ("%_change", "pct_change", "percent_change", "change")

ENTITY_NAME_CANDIDATES = ("advertiser_name",)
IMPRESSIONS_PREFERRED = (
    "impressions_2h_2025",
    "impressions_2025_2h",
    "impressions_2h25",
    "impressions_2h_25",
    "tv_impressions_2h_2025",
    "tv_impressions",
    "impressions",
)

MEMBERSHIP_ENTITY_CANDIDATES = ("advertiser", "advertiser_name", "name", "brand")
MEMBERSHIP_CATEGORY_CANDIDATES = ("vertical", "vert", "category")

DETAIL_METRIC_CANDIDATES = {
    "impressions": ("impressions",),
    "reach": ("reach",),
    "frequency": ("frequency",),
}


def _clean(columns: Iterable[object]) -> List[str]:
    return [str(c) for c in columns if c is not None]


def resolve_column(available: Sequence[object], candidates: Sequence[str], *, table: Optional[str] = None) -> str:
    """Pick the header in ``available`` that best matches ``candidates``.

    Two passes over the candidates, in priority order: first an exact
    case-insensitive match, then a case-insensitive substring match. A
    low-priority substring hit never shadows an exact match further down
    the list. The original header spelling is returned.
    """
    columns = _clean(available)
    lower_map = {}
    for col in columns:
        lower_map.setdefault(col.strip().lower(), col)

    for cand in candidates:
        hit = lower_map.get(cand.strip().lower())
        if hit is not None:
            return hit

    for cand in candidates:
        c_lower = cand.strip().lower()
        for col in columns:
            if c_lower in col.strip().lower():
                return col

    raise ColumnNotFound(candidates, columns, table=table)


def resolve_impressions_column(available: Sequence[object], *, table: Optional[str] = None) -> str:
    columns = _clean(available)
    try:
        return resolve_column(columns, IMPRESSIONS_PREFERRED, table=table)
    except ColumnNotFound:
        for col in columns:
            if "impress" in col.lower():
                return col
    raise ColumnNotFound(list(IMPRESSIONS_PREFERRED) + ["*impress*"], columns, table=table)
