from __future__ import annotations

from typing import Any, Dict, Optional

import altair as alt
import pandas as pd

from core.layout import PrimaryLayout, SecondaryLayout

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def diverging_chart(primary: PrimaryLayout, title: Optional[str] = None) -> alt.Chart:
    """Vertical percent-change bars on the layout's symmetric domain, largest gain on top."""
    df = pd.DataFrame(
        [
            {
                "vertical": b.name,
                "pct_change": b.value,
                "order": b.index,
                "fill": b.fill,
                "opacity": b.opacity,
                "tooltip": b.tooltip,
                "selected": b.selected,
            }
            for b in primary.bars
        ]
    )
    if df.empty:
        df = pd.DataFrame(columns=["vertical", "pct_change", "order", "fill", "opacity", "tooltip", "selected"])
    order = [b.name for b in primary.bars]
    band = primary.y_scale
    base = alt.Chart(df).encode(
        y=alt.Y(
            "vertical:N",
            sort=order,
            title=None,
            scale=alt.Scale(paddingInner=band.padding_inner, paddingOuter=band.padding_outer),
            axis=alt.Axis(ticks=False, domain=False, labelLimit=320),
        ),
    )
    bars = base.mark_bar(cornerRadius=2).encode(
        x=alt.X(
            "pct_change:Q",
            title="% change in impressions",
            scale=alt.Scale(domain=list(primary.x_scale.domain), nice=False),
            axis=alt.Axis(gridDash=[4, 4], format="~s"),
        ),
        color=alt.Color("fill:N", scale=None),
        opacity=alt.Opacity("opacity:Q", scale=None),
        strokeWidth=alt.condition("datum.selected", alt.value(1.5), alt.value(0)),
        stroke=alt.value("#111827"),
        tooltip=[alt.Tooltip("vertical:N"), alt.Tooltip("tooltip:N", title="Change")],
    )
    zero = alt.Chart(pd.DataFrame({"x": [0.0]})).mark_rule(color="black", strokeWidth=1).encode(x="x:Q")
    chart = (bars + zero).properties(height=max(160, int(primary.content_bottom - primary.zero_y1)))
    if title:
        chart = chart.properties(title=title)
    return chart


def ranked_chart(secondary: SecondaryLayout, title: Optional[str] = None) -> alt.Chart:
    df = pd.DataFrame(
        [{"advertiser": b.name, "impressions": b.value, "rank": b.index + 1, "fill": b.fill} for b in secondary.bars]
    )
    if df.empty:
        df = pd.DataFrame(columns=["advertiser", "impressions", "rank", "fill"])
    chart = (
        alt.Chart(df)
        .mark_bar(cornerRadius=2, size=secondary.bar_width)
        .encode(
            x=alt.X("rank:O", title=None, axis=alt.Axis(labels=False, ticks=False)),
            y=alt.Y(
                "impressions:Q",
                title="Impressions",
                scale=alt.Scale(domain=[0, secondary.max_value]),
                axis=alt.Axis(format="~s", gridDash=[4, 4]),
            ),
            color=alt.Color("fill:N", scale=None),
            tooltip=["advertiser", alt.Tooltip("impressions:Q", format=",")],
        )
        .properties(height=int(secondary.baseline - secondary.top))
    )
    if title:
        chart = chart.properties(title=title)
    return chart
