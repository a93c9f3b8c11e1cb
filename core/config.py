from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Margins:
    top: float = 30.0
    right: float = 360.0
    bottom: float = 22.0
    left: float = 360.0


@dataclass(frozen=True)
class LayoutConfig:
    """Geometry of the drill-down chart in view-box units."""

    width: float = 1400.0
    title_height: float = 34.0
    chart_height: float = 740.0
    margins: Margins = field(default_factory=Margins)
    padding_inner: float = 0.20
    padding_outer: float = 0.10
    domain_multiplier: float = 1.02
    bar_gap: float = 3.0
    bar_min: float = 14.0
    bar_cap: float = 60.0
    label_offset: float = 12.0
    label_font_px: float = 14.0

    gap_below_chart: float = 75.0
    detail_text_height: float = 70.0
    secondary_chart_height: float = 250.0
    detail_panel_gap: float = 18.0
    detail_panel_height: float = 160.0
    bottom_padding: float = 26.0

    secondary_overhang: float = 20.0
    secondary_top_inset: float = 56.0
    secondary_bottom_inset: float = 24.0
    secondary_bar_gap: float = 4.0
    secondary_bar_min: float = 10.0
    secondary_bar_max: float = 32.0
    callout_gap: float = 18.0

    spine_inset: float = 120.0
    gap_from_label: float = 6.0
    dot_radius: float = 3.2
    dot_to_line_gap: float = 2.0
    detail_box_width: float = 640.0
    end_gap_to_paragraph: float = 10.0
    detail_anchor_dy: float = 18.0

    reveal_ms: float = 4200.0
    easing: str = "ease"
    metric_bar_max_px: float = 110.0
    top_n: int = 25

    @property
    def inner_width(self) -> float:
        return self.width - self.margins.left - self.margins.right

    @property
    def inner_height(self) -> float:
        return self.chart_height - self.margins.top - self.margins.bottom


def _as_float(value: Any, default: float, lo: float, hi: float) -> float:
    try:
        out = float(value)
    except Exception:
        return default
    if out != out:
        return default
    return max(lo, min(hi, out))


def normalize_config(raw: Optional[Dict[str, Any]] = None) -> LayoutConfig:
    """Build a LayoutConfig from a loose dict (query params, UI widgets); unknown keys are ignored."""
    raw = raw or {}
    base = LayoutConfig()

    m = raw.get("margins") or {}
    margins = Margins(
        top=_as_float(m.get("top", base.margins.top), base.margins.top, 0.0, 400.0),
        right=_as_float(m.get("right", base.margins.right), base.margins.right, 0.0, 1000.0),
        bottom=_as_float(m.get("bottom", base.margins.bottom), base.margins.bottom, 0.0, 400.0),
        left=_as_float(m.get("left", base.margins.left), base.margins.left, 0.0, 1000.0),
    )

    width = _as_float(raw.get("width", base.width), base.width, 200.0, 10000.0)
    if margins.left + margins.right >= width:
        margins = Margins(top=margins.top, bottom=margins.bottom, left=width * 0.25, right=width * 0.25)
    chart_height = _as_float(raw.get("chart_height", base.chart_height), base.chart_height, 100.0, 10000.0)
    if margins.top + margins.bottom >= chart_height:
        margins = Margins(top=0.0, bottom=0.0, left=margins.left, right=margins.right)

    top_n = raw.get("top_n", base.top_n)
    try:
        top_n = int(top_n)
    except Exception:
        top_n = base.top_n
    top_n = max(1, min(base.top_n, top_n))

    easing = str(raw.get("easing", base.easing) or base.easing)
    if easing not in {"ease", "linear"}:
        easing = base.easing

    overrides: Dict[str, Any] = {}
    for f in fields(LayoutConfig):
        if f.name in {"width", "chart_height", "margins", "top_n", "easing"} or f.name not in raw:
            continue
        default = getattr(base, f.name)
        overrides[f.name] = _as_float(raw[f.name], default, 0.0, 100000.0)
    for frac in ("padding_inner", "padding_outer"):
        if frac in overrides:
            overrides[frac] = min(overrides[frac], 0.95)

    return LayoutConfig(
        width=width,
        chart_height=chart_height,
        margins=margins,
        top_n=top_n,
        easing=easing,
        **overrides,
    )
