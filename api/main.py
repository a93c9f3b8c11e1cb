from __future__ import annotations

import logging
import math

import numpy as np
import pandas as pd
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import LayoutConfigModel, SelectionRequest
from core.config import LayoutConfig, normalize_config
from core.data import load_dataset, load_raw_tables
from core.errors import InvalidTransition, ReconcileError
from core.metrics_debug import compute_debug
from core.metrics_overview import compute_overview
from core.metrics_selection import compute_selection
from core.selection import IDLE


app = FastAPI(title="Vertical Impressions API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _config_from_model(model: LayoutConfigModel) -> LayoutConfig:
    return normalize_config(model.model_dump())


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
            },
        )
    )


def _error(exc: Exception, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


@app.get("/meta/categories")
def meta_categories():
    try:
        dataset = load_dataset()
        return _json({"categories": [c.name for c in dataset.categories.categories]})
    except ReconcileError as exc:
        logger.exception("meta_categories failed")
        return _error(exc, 422)
    except Exception as exc:
        logger.exception("meta_categories failed")
        return _error(exc)


@app.get("/overview")
def overview():
    try:
        dataset = load_dataset()
        return _json(compute_overview(dataset, LayoutConfig()))
    except ReconcileError as exc:
        logger.exception("overview failed")
        return _error(exc, 422)
    except Exception as exc:
        logger.exception("overview failed")
        return _error(exc)


@app.post("/overview")
def overview_with_layout(layout: LayoutConfigModel):
    try:
        dataset = load_dataset()
        return _json(compute_overview(dataset, _config_from_model(layout)))
    except ReconcileError as exc:
        logger.exception("overview failed")
        return _error(exc, 422)
    except Exception as exc:
        logger.exception("overview failed")
        return _error(exc)


@app.post("/selection")
def selection(request: SelectionRequest):
    try:
        dataset = load_dataset()
        config = _config_from_model(request.layout)
        state = IDLE
        if request.category_index is not None:
            state = state.select_category(request.category_index, count=len(dataset.categories.categories))
        if request.entity_index is not None:
            entities = dataset.entities_at(state.category_index)[: config.top_n]
            state = state.select_entity(request.entity_index, count=len(entities))
        payload = compute_selection(
            dataset,
            state,
            config,
            elapsed_ms=request.elapsed_ms if request.elapsed_ms is not None else 0.0,
            label_width=request.label_width,
        )
        return _json(payload)
    except (ReconcileError, InvalidTransition, IndexError) as exc:
        logger.exception("selection failed")
        return _error(exc, 422)
    except Exception as exc:
        logger.exception("selection failed")
        return _error(exc)


@app.get("/debug")
def debug():
    try:
        return _json(compute_debug(load_dataset()))
    except ReconcileError as exc:
        logger.exception("debug failed")
        return _error(exc, 422)
    except Exception as exc:
        logger.exception("debug failed")
        return _error(exc)


@app.get("/export/{table}")
def export_table(table: str):
    tables = load_raw_tables()
    source = tables.get(table)
    if source is None:
        source = tables.get(f"{table}.csv")
    export_df = source.to_frame() if source is not None else pd.DataFrame()
    filename = table if table.endswith(".csv") else f"{table}.csv"
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={filename}"})
