import logging
from contextlib import contextmanager
from typing import Optional

import altair as alt
import streamlit as st

from core.charts import diverging_chart, ranked_chart
from core.config import LayoutConfig, normalize_config
from core.data import load_dataset
from core.errors import ReconcileError
from core.layout import layout_primary, layout_secondary
from core.metrics_debug import compute_debug
from core.metrics_overview import CHART_TITLE, summarize
from core.metrics_selection import compute_selection, detail_paragraph
from core.selection import IDLE, SelectionState

alt.data_transformers.disable_max_rows()
logger = logging.getLogger(__name__)


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 8px;}
        .metric-grid {display: grid;grid-template-columns: 218px 74px 320px;align-items: center;margin-bottom: 12px;font-size: 13px;}
        .metric-bar {height: 18px;background: #d4d4d4;border: 1px solid #8a8a8a;box-sizing: border-box;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def metric_row_html(row: dict) -> str:
    pct_color = "#16a34a" if row["increase"] else "#dc2626"
    return (
        "<div class='metric-grid'>"
        f"<div style='display:flex;justify-content:flex-end;gap:10px;align-items:center'>"
        f"<span>{row['text_a']}</span><div class='metric-bar' style='width:{row['width_a']:.1f}px'></div></div>"
        f"<div style='text-align:center;font-weight:700;color:{pct_color}'>{row['pct_text']}</div>"
        f"<div style='display:flex;gap:12px;align-items:center'>"
        f"<div class='metric-bar' style='width:{row['width_b']:.1f}px'></div>"
        f"<span>{row['text_b']} <b>{row['label']}</b></span></div>"
        "</div>"
    )


def get_state() -> SelectionState:
    return st.session_state.get("selection", IDLE)


def set_state(state: SelectionState) -> None:
    st.session_state["selection"] = state


# ---------- UI setup ----------
st.set_page_config(page_title="Vertical Impressions YOY", layout="wide")
inject_base_styles()

try:
    dataset = load_dataset()
except ReconcileError as exc:
    logger.exception("dataset load failed")
    st.error(f"Could not build the chart: {exc}")
    st.stop()

with st.sidebar:
    st.markdown("### Layout")
    with st.expander("Advanced settings", expanded=False):
        width = st.slider("View width", min_value=800, max_value=2000, value=1400, step=50)
        chart_height = st.slider("Chart height", min_value=300, max_value=1200, value=740, step=20)
        easing = st.selectbox("Connector easing", ["ease", "linear"], index=0)
    show_debug = st.checkbox("Show data quality", value=False)

config: LayoutConfig = normalize_config({"width": width, "chart_height": chart_height, "easing": easing})

st.markdown(summarize(dataset.categories)["text"])
st.markdown("Click on a specific vertical to learn how individual advertisers in each vertical were contributing to the changes.")

categories = dataset.categories.categories
state = get_state()

chart_slot = st.container()

names = [c.name for c in categories]
picked: Optional[str] = st.selectbox(
    "Vertical",
    options=[None] + names,
    index=0 if state.category_index is None else state.category_index + 1,
    format_func=lambda v: "Select a vertical…" if v is None else v,
)
if picked is not None:
    state = state.select_category(names.index(picked), count=len(names))
    set_state(state)

primary = layout_primary(categories, config, selected_index=state.category_index)
with chart_slot:
    with card(CHART_TITLE):
        st.altair_chart(diverging_chart(primary), use_container_width=True)

if state.category_index is not None:
    vertical = categories[state.category_index]
    st.markdown(detail_paragraph(vertical.name, config.top_n))
    entities = dataset.entities.entities_for(vertical.name)[: config.top_n]
    if not entities:
        st.info("No advertisers matched this vertical.")
    else:
        secondary = layout_secondary(entities, primary, config, selected_index=state.entity_index)
        st.altair_chart(ranked_chart(secondary), use_container_width=True)
        adv_names = [e.name for e in entities]
        adv = st.selectbox(
            "Advertiser",
            options=[None] + adv_names,
            index=0 if state.entity_index is None else state.entity_index + 1,
            format_func=lambda v: "Select an advertiser…" if v is None else v,
            key=f"advertiser-{state.category_index}",
        )
        if adv is not None:
            state = state.select_entity(adv_names.index(adv), count=len(adv_names))
            set_state(state)

    snapshot = compute_selection(dataset, state, config)
    if snapshot["advertiser"] is not None:
        left, right = st.columns([3, 2])
        with left:
            st.markdown(snapshot["narrative"])
        with right:
            st.markdown(
                "<div class='metric-grid'><div style='text-align:center;font-weight:700'>2H, 2024</div><div></div>"
                "<div style='text-align:center;font-weight:700'>2H, 2025</div></div>",
                unsafe_allow_html=True,
            )
            st.markdown("".join(metric_row_html(r) for r in snapshot["metrics"]), unsafe_allow_html=True)
            if not snapshot["details_available"]:
                st.caption("Year-over-year detail is unavailable for this dataset.")
    with st.expander("Layout geometry", expanded=False):
        st.json({k: snapshot[k] for k in ("state", "connector", "detail_text")})

if show_debug:
    with card("Data Quality / Debug"):
        st.json(compute_debug(dataset))
