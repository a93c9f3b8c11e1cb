from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Optional

from core.charts import ranked_chart, to_vega_spec
from core.config import LayoutConfig
from core.layout import layout_connector, layout_primary, layout_secondary, reveal_fraction
from core.models import ReconciledDataset
from core.selection import Phase, SelectionState, compare_entity, entity_narrative


def detail_paragraph(vertical: str, top_n: int) -> str:
    return (
        f"The following chart contains the top {top_n} advertisers in the {vertical} vertical based on the number "
        "of TV ad impressions served from July through December of 2025. Hover over each bar see the name of each "
        "advertiser and select the bar to view more details."
    )


def compute_selection(
    dataset: ReconciledDataset,
    state: SelectionState,
    config: LayoutConfig,
    *,
    elapsed_ms: Optional[float] = None,
    label_width: Optional[float] = None,
) -> Dict[str, Any]:
    """Geometry snapshot for one selection event.

    Built from scratch each call so a renderer never sees a half-updated
    layout. ``elapsed_ms`` defaults to the time since the vertical was picked.
    """
    categories = dataset.categories.categories
    primary = layout_primary(categories, config, selected_index=state.category_index)
    payload: Dict[str, Any] = {
        "state": {**asdict(state), "phase": state.phase.value},
        "view_box": [0, 0, primary.view_width, primary.view_height],
        "vertical": None,
        "detail_text": None,
        "connector": None,
        "advertisers": None,
        "advertiser": None,
        "metrics": [],
        "narrative": None,
        "details_available": dataset.details.ok,
        "charts": {},
    }
    if state.phase is Phase.IDLE:
        return payload

    category = dataset.category_at(state.category_index)
    if category is None:
        raise IndexError(f"category index {state.category_index} out of range for {len(categories)} categories")

    if elapsed_ms is None:
        elapsed_ms = state.elapsed_ms()
    connector = layout_connector(primary, state.category_index, config, label_width=label_width)
    fraction = reveal_fraction(elapsed_ms, config.reveal_ms, config.easing)

    entities = dataset.entities.entities_for(category.name)[: config.top_n]
    secondary = layout_secondary(entities, primary, config, selected_index=state.entity_index)

    payload.update(
        {
            "vertical": asdict(category),
            "detail_text": {
                "text": detail_paragraph(category.name, config.top_n),
                "x": primary.detail_box_left,
                "y": primary.detail_text_top,
                "width": config.detail_box_width,
                "height": config.detail_text_height,
            },
            "connector": {
                "start": connector.start,
                "end": connector.end,
                "points": connector.points,
                "path": connector.svg_path,
                "length": connector.length,
                "dot_radius": connector.dot_radius,
                "elapsed_ms": elapsed_ms,
                "duration_ms": config.reveal_ms,
                "reveal_fraction": fraction,
                "drawn_points": connector.partial_points(fraction),
                "end_cap_visible": fraction >= 1.0,
            },
            "advertisers": {
                "bars": [asdict(b) for b in secondary.bars],
                "baseline": secondary.baseline,
                "left": secondary.left,
                "right": secondary.right,
                "max_value": secondary.max_value,
                "callout": asdict(secondary.callout) if secondary.callout else None,
            },
        }
    )
    if entities:
        payload["charts"]["advertisers"] = to_vega_spec(ranked_chart(secondary))

    if state.phase is not Phase.ENTITY_SELECTED:
        return payload
    if not (0 <= state.entity_index < len(entities)):
        raise IndexError(f"advertiser index {state.entity_index} out of range for {len(entities)} advertisers")

    entity = entities[state.entity_index]
    rows = compare_entity(entity, dataset.details.get(entity.name), max_px=config.metric_bar_max_px)
    payload.update(
        {
            "advertiser": asdict(entity),
            "metrics": [asdict(r) for r in rows],
            "narrative": entity_narrative(entity, rows),
        }
    )
    return payload
