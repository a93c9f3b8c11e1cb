from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

from core.charts import diverging_chart, to_vega_spec
from core.config import LayoutConfig
from core.layout import layout_primary
from core.models import CategoryTable, ReconciledDataset

CHART_TITLE = "Percent Change in YOY TV Impressions for 2H, 2025"


def summarize(table: CategoryTable) -> Dict[str, Any]:
    overall = table.overall_pct_change
    top_pos = table.top_positive
    top_neg = table.top_negative
    direction = "increased" if overall >= 0 else "declined"
    overall_txt = f"{abs(overall):.1f}%"

    pos_txt = " and ".join(top_pos) if top_pos else "(no positive verticals)"
    neg_txt = " and ".join(top_neg) if top_neg else "(no negative verticals)"
    text = (
        f"Overall TV advertising impressions {direction} by {overall_txt} in the second half of 2025, "
        f"compared to YOY. Verticals investing more heavily in TV were {pos_txt}, while those contributing "
        f"to the decline were {neg_txt}."
    )
    return {
        "overall_pct_change": overall,
        "overall_from_sentinel": table.overall_from_sentinel,
        "direction": direction,
        "overall_text": overall_txt,
        "top_positive": top_pos,
        "top_negative": top_neg,
        "text": text,
    }


def compute_overview(dataset: ReconciledDataset, config: LayoutConfig) -> Dict[str, Any]:
    table = dataset.categories
    primary = layout_primary(table.categories, config)
    return {
        "config": asdict(config),
        "summary": summarize(table),
        "categories": [asdict(c) for c in table.categories],
        "advertiser_counts": {c.name: len(dataset.entities.entities_for(c.name)) for c in table.categories},
        "details_available": dataset.details.ok,
        "layout": {
            "title": CHART_TITLE,
            "title_x": primary.title_x,
            "view_box": [0, 0, primary.view_width, primary.view_height],
            "bars": [asdict(b) for b in primary.bars],
            "zero_line": {"x": primary.zero_x, "y1": primary.zero_y1, "y2": primary.zero_y2},
            "x_domain": list(primary.x_scale.domain),
            "band": {"step": primary.y_scale.step, "bandwidth": primary.y_scale.bandwidth},
        },
        "charts": {"verticals": to_vega_spec(diverging_chart(primary, title=CHART_TITLE))},
    }
