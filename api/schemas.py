from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class MarginsModel(BaseModel):
    top: float = 30.0
    right: float = 360.0
    bottom: float = 22.0
    left: float = 360.0


class LayoutConfigModel(BaseModel):
    width: float = 1400.0
    chart_height: float = 740.0
    margins: MarginsModel = Field(default_factory=MarginsModel)
    padding_inner: float = 0.20
    padding_outer: float = 0.10
    reveal_ms: float = 4200.0
    easing: str = "ease"
    metric_bar_max_px: float = 110.0
    top_n: int = 25


class SelectionRequest(BaseModel):
    category_index: Optional[int] = None
    entity_index: Optional[int] = None
    elapsed_ms: Optional[float] = None
    label_width: Optional[float] = None
    layout: LayoutConfigModel = Field(default_factory=LayoutConfigModel)
