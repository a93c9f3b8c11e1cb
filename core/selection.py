from __future__ import annotations

import enum
import math
import time
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, List, Optional

from core.errors import InvalidTransition
from core.models import Entity, EntityDetail


class Phase(str, enum.Enum):
    IDLE = "idle"
    CATEGORY_SELECTED = "category_selected"
    ENTITY_SELECTED = "entity_selected"


@dataclass(frozen=True)
class SelectionState:
    """Which vertical and which advertiser (within it) are selected.

    Transitions return a new state. ``revealed_at`` is the monotonic clock
    reading (seconds) at the last vertical change and drives the connector
    reveal.
    """

    category_index: Optional[int] = None
    entity_index: Optional[int] = None
    revealed_at: Optional[float] = None

    @property
    def phase(self) -> Phase:
        if self.category_index is None:
            return Phase.IDLE
        if self.entity_index is None:
            return Phase.CATEGORY_SELECTED
        return Phase.ENTITY_SELECTED

    def select_category(
        self, index: int, *, count: Optional[int] = None, clock: Callable[[], float] = time.monotonic
    ) -> "SelectionState":
        if count is not None and not (0 <= index < count):
            raise IndexError(f"category index {index} out of range for {count} categories")
        if index == self.category_index:
            return self
        return SelectionState(category_index=index, entity_index=None, revealed_at=clock())

    def select_entity(self, index: int, *, count: Optional[int] = None) -> "SelectionState":
        if self.phase is Phase.IDLE:
            raise InvalidTransition("select a vertical before selecting an advertiser")
        if count is not None and not (0 <= index < count):
            raise IndexError(f"advertiser index {index} out of range for {count} advertisers")
        if index == self.entity_index:
            return self
        return replace(self, entity_index=index)

    def elapsed_ms(self, now: Optional[float] = None, clock: Callable[[], float] = time.monotonic) -> float:
        if self.revealed_at is None:
            return 0.0
        now = clock() if now is None else now
        return max(0.0, (now - self.revealed_at) * 1000.0)


IDLE = SelectionState()


# ---------------- Period-over-period comparison ----------------
def _finite(value: Optional[float]) -> bool:
    return value is not None and isinstance(value, (int, float)) and math.isfinite(value)


def pct_change(a: Optional[float], b: Optional[float]) -> Optional[float]:
    """Percent change from ``a`` to ``b``; None when either is missing or ``a`` is zero."""
    if not _finite(a) or not _finite(b) or a == 0:
        return None
    return (b - a) / a * 100


def metric_width(value: Optional[float], max_value: float, max_px: float = 110.0) -> float:
    if not _finite(value) or not _finite(max_value) or max_value <= 0:
        return 0.0
    return max(0.0, min(max_px, value / max_value * max_px))


def round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def fmt_int(n: Optional[float]) -> str:
    if not _finite(n):
        return "—"
    return f"{round_half_up(n):,}"


def fmt_mm(n: Optional[float]) -> str:
    """Millions with thousands separators, e.g. 4,375MM."""
    if not _finite(n):
        return "—"
    return f"{round_half_up(n / 1_000_000):,}MM"


def fmt_pct(n: Optional[float]) -> str:
    if not _finite(n):
        return "—"
    return f"{n:.1f}%"


def fmt_decimal(n: Optional[float]) -> str:
    if not _finite(n):
        return "—"
    return f"{n:.1f}"


@dataclass(frozen=True)
class MetricRow:
    key: str
    label: str
    value_a: Optional[float]
    value_b: Optional[float]
    pct_change: Optional[float]
    max_value: float
    width_a: float
    width_b: float
    text_a: str
    text_b: str
    pct_text: str
    increase: bool


def _metric_row(
    key: str, label: str, a: Optional[float], b: Optional[float], fmt: Callable[[Optional[float]], str], max_px: float
) -> MetricRow:
    top = max(a if _finite(a) else 0.0, b if _finite(b) else 0.0, 1.0)
    pct = pct_change(a, b)
    return MetricRow(
        key=key,
        label=label,
        value_a=a if _finite(a) else None,
        value_b=b if _finite(b) else None,
        pct_change=pct,
        max_value=top,
        width_a=metric_width(a, top, max_px),
        width_b=metric_width(b, top, max_px),
        text_a=fmt(a),
        text_b=fmt(b),
        pct_text=fmt_pct(pct),
        increase=pct is not None and pct >= 0,
    )


def compare_entity(entity: Entity, detail: Optional[EntityDetail], *, max_px: float = 110.0) -> List[MetricRow]:
    """Impressions, households reached and frequency for both periods.

    Without a detail record the current impressions fall back to the
    advertiser's ranked volume and everything else is unavailable.
    """
    imp_b = detail.impressions_b if detail and detail.impressions_b is not None else entity.impressions
    return [
        _metric_row("imp", "Impressions Served", detail.impressions_a if detail else None, imp_b, fmt_mm, max_px),
        _metric_row(
            "hh", "Households Reached", detail.reach_a if detail else None, detail.reach_b if detail else None, fmt_mm, max_px
        ),
        _metric_row(
            "fq",
            "Average Frequency",
            detail.frequency_a if detail else None,
            detail.frequency_b if detail else None,
            fmt_decimal,
            max_px,
        ),
    ]


def entity_narrative(entity: Entity, rows: List[MetricRow]) -> str:
    imp, hh, fq = rows
    direction = "increase" if imp.increase else "decrease"
    return (
        f"{entity.name} served {fmt_int(imp.value_b)} impressions in 2H, 2025, a {imp.pct_text} {direction} "
        f"over the same period in 2024. This media activity reached {fmt_int(hh.value_b)} households with an "
        f"average household frequency of {fq.text_b} impressions per household."
    )
