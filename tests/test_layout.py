from __future__ import annotations

import pytest

from core.config import LayoutConfig, Margins, normalize_config
from core.layout import (
    NEGATIVE_FILL,
    POSITIVE_FILL,
    SECONDARY_SELECTED_FILL,
    BandScale,
    diverging_domain,
    layout_connector,
    layout_primary,
    layout_secondary,
    reveal_fraction,
)
from core.models import Category, Entity

CATEGORIES = [Category("Auto", 10.0), Category("Food", 5.0), Category("Retail", -30.0)]


def test_diverging_domain_is_symmetric_with_floor() -> None:
    assert diverging_domain([10.0, -30.0]) == pytest.approx((-30.6, 30.6))
    assert diverging_domain([0.0, 0.0]) == pytest.approx((-1.02, 1.02))
    assert diverging_domain([]) == pytest.approx((-1.02, 1.02))


def test_band_scale_fills_extent_with_paddings() -> None:
    scale = BandScale(n=3, start=0.0, extent=100.0)
    step = 100.0 / (3 + 0.2 - 0.2 + 0.6)
    assert scale.step == pytest.approx(step)
    assert scale.bandwidth == pytest.approx(step * 0.8)
    assert scale.top(0) == pytest.approx(step * 0.1)
    assert scale.end == pytest.approx(step * 2.9)
    assert scale.end < 100.0


def test_band_scale_single_band_is_positive_and_fits() -> None:
    scale = BandScale(n=1, start=64.0, extent=688.0)
    assert scale.bandwidth > 0
    assert scale.top(0) >= 64.0
    assert scale.end <= 64.0 + 688.0
    assert BandScale(n=0, start=0.0, extent=100.0).step == 0.0


def test_primary_bars_span_zero_to_value() -> None:
    layout = layout_primary(CATEGORIES)
    auto, food, retail = layout.bars

    assert auto.x == pytest.approx(layout.zero_x)
    assert layout.zero_x == pytest.approx(360 + 680 / 2)
    assert auto.x + auto.width == pytest.approx(layout.x_scale(10.0))
    assert retail.x == pytest.approx(layout.x_scale(-30.0))
    assert retail.x + retail.width == pytest.approx(layout.zero_x)

    assert (auto.fill, retail.fill) == (POSITIVE_FILL, NEGATIVE_FILL)
    assert retail.opacity == pytest.approx(1.0)
    assert auto.opacity == pytest.approx(0.28 + 0.72 / 3)
    assert (auto.label_anchor, retail.label_anchor) == ("start", "end")
    assert auto.tooltip == "10.0% increase in impressions"
    assert retail.tooltip == "30.0% decrease in impressions"


def test_primary_bars_stay_inside_their_band() -> None:
    layout = layout_primary(CATEGORIES)
    band = layout.y_scale
    for bar in layout.bars:
        assert bar.y >= band.top(bar.index) - 1e-9
        assert bar.y + bar.height <= band.top(bar.index) + band.bandwidth + 1e-9


def test_single_bar_fits_a_tiny_chart() -> None:
    config = LayoutConfig(chart_height=20.0, margins=Margins(top=0, right=360, bottom=0, left=360))
    layout = layout_primary([Category("Only", 4.0)], config)
    bar = layout.bars[0]
    assert 0 < bar.height <= layout.y_scale.bandwidth
    assert layout.content_bottom <= config.title_height + config.inner_height


def test_blocks_stack_below_chart_content() -> None:
    layout = layout_primary(CATEGORIES)
    assert layout.detail_text_top == pytest.approx(layout.content_bottom + 75)
    assert layout.secondary_top == pytest.approx(layout.detail_text_top + 76)
    assert layout.detail_panel_top == pytest.approx(layout.secondary_top + 268)
    assert layout.view_height == pytest.approx(layout.detail_panel_top + 186)


def test_secondary_bars_scale_to_largest_advertiser() -> None:
    primary = layout_primary(CATEGORIES)
    entities = [Entity("A", 100.0), Entity("B", 50.0), Entity("C", 0.0)]
    layout = layout_secondary(entities, primary, selected_index=1)

    assert layout.max_value == 100.0
    full = layout.baseline - layout.top
    assert layout.bars[0].height == pytest.approx(full)
    assert layout.bars[1].height == pytest.approx(full / 2)
    assert layout.bars[2].height == 0
    assert layout.bar_width == 32.0
    assert layout.bars[1].fill == SECONDARY_SELECTED_FILL and layout.bars[1].selected
    assert layout.callout.name == "B"
    assert layout.callout.label_y == pytest.approx(layout.bars[1].y - 18)


def test_secondary_bar_width_is_clamped() -> None:
    primary = layout_primary(CATEGORIES)
    many = [Entity(str(i), 1.0) for i in range(200)]
    assert layout_secondary(many, primary).bar_width == 10.0
    empty = layout_secondary([], primary)
    assert empty.bars == () and empty.max_value == 1.0 and empty.callout is None


def test_connector_routes_three_segments_to_the_right_for_gains() -> None:
    config = LayoutConfig()
    primary = layout_primary(CATEGORIES, config)
    connector = layout_connector(primary, 0, config, label_width=40.0)

    bar = primary.bars[0]
    assert connector.start == pytest.approx((bar.label_x + 40.0 + 6 + 3.2, primary.y_scale.center(0)))
    (x0, y0), (x1, y1), (x2, y2), (x3, y3) = connector.points
    assert y0 == y1 and x1 == x2 and y2 == y3
    assert x1 == config.width - 120
    assert connector.end == (x3, y3)
    assert x3 == pytest.approx(primary.detail_box_right + 10)
    assert y3 == pytest.approx(primary.detail_text_top + 18)
    assert len(connector.segment_lengths) == 3
    assert connector.svg_path.startswith("M ") and connector.svg_path.count("L ") == 3


def test_connector_routes_left_for_declines() -> None:
    primary = layout_primary(CATEGORIES)
    connector = layout_connector(primary, 2)
    bar = primary.bars[2]
    assert connector.start[0] == pytest.approx(bar.label_left - 6 - 3.2)
    assert connector.points[1][0] == 120
    assert connector.end[0] == pytest.approx(primary.detail_box_left - 10)


def test_connector_partial_reveal_follows_path_length() -> None:
    primary = layout_primary(CATEGORIES)
    connector = layout_connector(primary, 0)
    first, second, _ = connector.segment_lengths

    assert connector.partial_points(0.0)[-1] == pytest.approx(connector.points[0])
    assert connector.partial_points(1.0) == list(connector.points)
    midway = (first + second / 2) / connector.length
    drawn = connector.partial_points(midway)
    assert len(drawn) == 3
    assert drawn[-1][0] == pytest.approx(connector.points[1][0])
    assert drawn[-1][1] == pytest.approx((connector.points[1][1] + connector.points[2][1]) / 2)


@pytest.mark.parametrize("easing", ["ease", "linear"])
def test_reveal_fraction_is_monotonic(easing) -> None:
    samples = [reveal_fraction(t, 4200, easing) for t in range(-100, 4500, 50)]
    assert samples[0] == 0.0
    assert samples[-1] == 1.0
    assert all(b >= a for a, b in zip(samples, samples[1:]))
    assert reveal_fraction(2100, 4200, "linear") == pytest.approx(0.5)


def test_normalize_config_clamps_loose_input() -> None:
    config = normalize_config({"width": "abc", "top_n": 500, "easing": "bounce", "padding_inner": 3, "reveal_ms": "1000"})
    assert config.width == 1400.0
    assert config.top_n == 25
    assert config.easing == "ease"
    assert config.padding_inner == 0.95
    assert config.reveal_ms == 1000.0

    narrow = normalize_config({"width": 400})
    assert narrow.inner_width > 0


def test_only_the_picked_vertical_is_highlighted() -> None:
    layout = layout_primary(CATEGORIES, selected_index=2)
    assert [bar.selected for bar in layout.bars] == [False, False, True]
    assert not any(bar.selected for bar in layout_primary(CATEGORIES).bars)
