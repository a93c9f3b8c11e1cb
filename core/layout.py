"""Geometry of the drill-down chart.

Everything here is a pure function of the reconciled data, the layout
config and the current selection. Nothing is cached or mutated: callers
rebuild the layout whenever data, container size or selection change and
hand the result to a renderer.

Coordinates are view-box units with the origin at the top-left corner.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from core.config import LayoutConfig
from core.models import Category, Entity

Point = Tuple[float, float]

POSITIVE_FILL = "#16a34a"
NEGATIVE_FILL = "#dc2626"
SECONDARY_FILL = "#bdbdbd"
SECONDARY_SELECTED_FILL = "#3b82f6"

# Average glyph advance as a share of the font size; used when the renderer has not measured a label.
LABEL_CHAR_WIDTH = 0.56


@dataclass(frozen=True)
class LinearScale:
    domain: Tuple[float, float]
    range: Tuple[float, float]

    def __call__(self, value: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        if d1 == d0:
            return r0
        t = (value - d0) / (d1 - d0)
        return r0 + t * (r1 - r0)


def diverging_domain(values: Sequence[float], multiplier: float = 1.02) -> Tuple[float, float]:
    max_abs = max((abs(v) for v in values), default=0.0)
    if not max_abs > 0:
        max_abs = 1.0
    return (-max_abs * multiplier, max_abs * multiplier)


@dataclass(frozen=True)
class BandScale:
    """Padded categorical scale.

    ``step`` is the distance between band starts; inner padding is the gap
    between bands as a share of the step, outer padding the margin before
    the first and after the last band.
    """

    n: int
    start: float
    extent: float
    padding_inner: float = 0.20
    padding_outer: float = 0.10

    @property
    def step(self) -> float:
        if self.n <= 0:
            return 0.0
        denom = self.n + self.padding_outer * 2 - self.padding_inner + self.padding_inner * self.n
        return self.extent / denom if denom > 0 else 0.0

    @property
    def bandwidth(self) -> float:
        return self.step * (1 - self.padding_inner)

    def top(self, i: int) -> float:
        return self.start + self.step * self.padding_outer + i * self.step

    def center(self, i: int) -> float:
        return self.top(i) + self.bandwidth / 2

    @property
    def end(self) -> float:
        if self.n <= 0:
            return self.start
        return self.top(self.n - 1) + self.bandwidth


def opacity_for(value: float, max_abs: float) -> float:
    if not max_abs > 0:
        max_abs = 1.0
    mag = min(abs(value) / max_abs, 1.0)
    return 0.28 + 0.72 * mag


def color_for(value: float) -> str:
    return POSITIVE_FILL if value >= 0 else NEGATIVE_FILL


def tooltip_text_for(value: float) -> str:
    direction = "increase" if value >= 0 else "decrease"
    return f"{abs(value):.1f}% {direction} in impressions"


def estimate_label_width(text: str, font_px: float) -> float:
    return len(text) * font_px * LABEL_CHAR_WIDTH


@dataclass(frozen=True)
class Bar:
    index: int
    name: str
    value: float
    x: float
    y: float
    width: float
    height: float
    fill: str
    opacity: float
    label_x: float
    label_y: float
    label_anchor: str
    label_width: float
    tooltip: str
    selected: bool = False

    @property
    def label_left(self) -> float:
        return self.label_x if self.label_anchor == "start" else self.label_x - self.label_width

    @property
    def label_right(self) -> float:
        return self.label_left + self.label_width


@dataclass(frozen=True)
class PrimaryLayout:
    bars: Tuple[Bar, ...]
    x_scale: LinearScale
    y_scale: BandScale
    max_abs: float
    zero_x: float
    zero_y1: float
    zero_y2: float
    title_x: float
    content_bottom: float
    detail_text_top: float
    detail_box_left: float
    detail_box_right: float
    secondary_top: float
    detail_panel_top: float
    view_width: float
    view_height: float


def layout_primary(
    categories: Sequence[Category],
    config: Optional[LayoutConfig] = None,
    *,
    selected_index: Optional[int] = None,
    label_widths: Optional[Dict[int, float]] = None,
) -> PrimaryLayout:
    config = config or LayoutConfig()
    label_widths = label_widths or {}
    values = [c.pct_change for c in categories]
    domain = diverging_domain(values, config.domain_multiplier)
    max_abs = domain[1] / config.domain_multiplier

    left = config.margins.left
    x_scale = LinearScale(domain=domain, range=(left, left + config.inner_width))
    y_scale = BandScale(
        n=len(categories),
        start=config.title_height + config.margins.top,
        extent=config.inner_height,
        padding_inner=config.padding_inner,
        padding_outer=config.padding_outer,
    )
    band = y_scale.bandwidth
    bar_size = max(min(config.bar_min, band), min(config.bar_cap, band - config.bar_gap))

    x0 = x_scale(0.0)
    bars: List[Bar] = []
    for i, c in enumerate(categories):
        x1 = x_scale(c.pct_change)
        is_pos = c.pct_change >= 0
        label_w = label_widths.get(i)
        if label_w is None:
            label_w = estimate_label_width(c.name, config.label_font_px)
        bars.append(
            Bar(
                index=i,
                name=c.name,
                value=c.pct_change,
                x=min(x0, x1),
                y=y_scale.center(i) - bar_size / 2,
                width=abs(x1 - x0),
                height=bar_size,
                fill=color_for(c.pct_change),
                opacity=opacity_for(c.pct_change, max_abs),
                label_x=x1 + config.label_offset if is_pos else x1 - config.label_offset,
                label_y=y_scale.center(i),
                label_anchor="start" if is_pos else "end",
                label_width=float(label_w),
                tooltip=tooltip_text_for(c.pct_change),
                selected=selected_index == i,
            )
        )

    content_bottom = y_scale.end
    detail_text_top = content_bottom + config.gap_below_chart
    secondary_top = detail_text_top + config.detail_text_height + 6
    detail_panel_top = secondary_top + config.secondary_chart_height + config.detail_panel_gap
    return PrimaryLayout(
        bars=tuple(bars),
        x_scale=x_scale,
        y_scale=y_scale,
        max_abs=max_abs,
        zero_x=x0,
        zero_y1=y_scale.top(0),
        zero_y2=content_bottom,
        title_x=config.width / 2,
        content_bottom=content_bottom,
        detail_text_top=detail_text_top,
        detail_box_left=config.width / 2 - config.detail_box_width / 2,
        detail_box_right=config.width / 2 + config.detail_box_width / 2,
        secondary_top=secondary_top,
        detail_panel_top=detail_panel_top,
        view_width=config.width,
        view_height=detail_panel_top + config.detail_panel_height + config.bottom_padding,
    )


# ---------------- Secondary (advertiser) chart ----------------
@dataclass(frozen=True)
class SecondaryBar:
    index: int
    name: str
    value: float
    x: float
    y: float
    width: float
    height: float
    fill: str
    selected: bool = False


@dataclass(frozen=True)
class Callout:
    name: str
    x: float
    bar_top_y: float
    label_y: float


@dataclass(frozen=True)
class SecondaryLayout:
    bars: Tuple[SecondaryBar, ...]
    left: float
    right: float
    top: float
    baseline: float
    band: float
    bar_width: float
    max_value: float
    callout: Optional[Callout] = None


def layout_secondary(
    entities: Sequence[Entity],
    primary: PrimaryLayout,
    config: Optional[LayoutConfig] = None,
    *,
    selected_index: Optional[int] = None,
) -> SecondaryLayout:
    config = config or LayoutConfig()
    left = config.margins.left - config.secondary_overhang
    right = config.margins.left + config.inner_width + config.secondary_overhang
    width = right - left
    top = primary.secondary_top + config.secondary_top_inset
    baseline = primary.secondary_top + config.secondary_chart_height - config.secondary_bottom_inset
    height = baseline - top

    n = len(entities)
    max_value = max([e.impressions for e in entities] + [1.0])
    band = width / n if n > 0 else width
    bar_w = max(config.secondary_bar_min, min(config.secondary_bar_max, band - config.secondary_bar_gap))

    bars: List[SecondaryBar] = []
    for i, e in enumerate(entities):
        h = max(e.impressions, 0.0) / max_value * height
        is_selected = selected_index == i
        bars.append(
            SecondaryBar(
                index=i,
                name=e.name,
                value=e.impressions,
                x=left + i * band + (band - bar_w) / 2,
                y=baseline - h,
                width=bar_w,
                height=h,
                fill=SECONDARY_SELECTED_FILL if is_selected else SECONDARY_FILL,
                selected=is_selected,
            )
        )

    callout = None
    if selected_index is not None and 0 <= selected_index < n:
        sel = bars[selected_index]
        callout = Callout(
            name=sel.name,
            x=sel.x + bar_w / 2,
            bar_top_y=sel.y,
            label_y=sel.y - config.callout_gap,
        )

    return SecondaryLayout(
        bars=tuple(bars),
        left=left,
        right=right,
        top=top,
        baseline=baseline,
        band=band,
        bar_width=bar_w,
        max_value=max_value,
        callout=callout,
    )


# ---------------- Connector ----------------
@dataclass(frozen=True)
class Connector:
    """Routed connector from a selected vertical label to the detail paragraph.

    ``points`` always holds four vertices: horizontal run to the spine,
    vertical run along it, horizontal run to the anchor.
    """

    start: Point
    points: Tuple[Point, Point, Point, Point]
    end: Point
    dot_radius: float

    @property
    def segment_lengths(self) -> Tuple[float, ...]:
        return tuple(math.dist(a, b) for a, b in zip(self.points, self.points[1:]))

    @property
    def length(self) -> float:
        return sum(self.segment_lengths)

    @property
    def svg_path(self) -> str:
        (x0, y0), *rest = self.points
        return f"M {x0:.2f} {y0:.2f} " + " ".join(f"L {x:.2f} {y:.2f}" for x, y in rest)

    def point_at(self, fraction: float) -> Point:
        fraction = max(0.0, min(1.0, fraction))
        remaining = fraction * self.length
        for (a, b), seg in zip(zip(self.points, self.points[1:]), self.segment_lengths):
            if remaining <= seg and seg > 0:
                t = remaining / seg
                return (a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t)
            remaining -= seg
        return self.points[-1]

    def partial_points(self, fraction: float) -> List[Point]:
        """Vertices of the part of the path drawn at ``fraction`` of its length."""
        fraction = max(0.0, min(1.0, fraction))
        target = fraction * self.length
        out: List[Point] = [self.points[0]]
        travelled = 0.0
        for b, seg in zip(self.points[1:], self.segment_lengths):
            if travelled + seg <= target:
                out.append(b)
                travelled += seg
                continue
            out.append(self.point_at(fraction))
            break
        return out


def layout_connector(
    primary: PrimaryLayout,
    index: int,
    config: Optional[LayoutConfig] = None,
    *,
    label_width: Optional[float] = None,
) -> Connector:
    config = config or LayoutConfig()
    bar = primary.bars[index]
    is_pos = bar.value >= 0
    if label_width is not None:
        left = bar.label_x if is_pos else bar.label_x - label_width
        right = left + label_width
    else:
        left, right = bar.label_left, bar.label_right

    offset = config.gap_from_label + config.dot_radius
    start_x = right + offset if is_pos else left - offset
    start_y = primary.y_scale.center(index)
    spine_x = config.width - config.spine_inset if is_pos else config.spine_inset
    end_x = (
        primary.detail_box_right + config.end_gap_to_paragraph
        if is_pos
        else primary.detail_box_left - config.end_gap_to_paragraph
    )
    end_y = primary.detail_text_top + config.detail_anchor_dy
    path_start_x = start_x + config.dot_to_line_gap if is_pos else start_x - config.dot_to_line_gap

    points = (
        (path_start_x, start_y),
        (spine_x, start_y),
        (spine_x, end_y),
        (end_x, end_y),
    )
    return Connector(start=(start_x, start_y), points=points, end=(end_x, end_y), dot_radius=config.dot_radius)


# ---------------- Progressive reveal ----------------
def _cubic_bezier(p1x: float, p1y: float, p2x: float, p2y: float, x: float) -> float:
    def coord(t: float, a: float, b: float) -> float:
        u = 1 - t
        return 3 * u * u * t * a + 3 * u * t * t * b + t * t * t

    lo, hi = 0.0, 1.0
    for _ in range(40):
        mid = (lo + hi) / 2
        if coord(mid, p1x, p2x) < x:
            lo = mid
        else:
            hi = mid
    return coord((lo + hi) / 2, p1y, p2y)


EASINGS = {
    "linear": lambda t: t,
    "ease": lambda t: _cubic_bezier(0.25, 0.1, 0.25, 1.0, t),
}


def reveal_fraction(elapsed_ms: float, duration_ms: float = 4200.0, easing: str = "ease") -> float:
    """Share of the connector drawn ``elapsed_ms`` after the selection; monotone in time."""
    if duration_ms <= 0 or elapsed_ms >= duration_ms:
        return 1.0
    if elapsed_ms <= 0:
        return 0.0
    fn = EASINGS.get(easing, EASINGS["linear"])
    return max(0.0, min(1.0, fn(elapsed_ms / duration_ms)))
