from __future__ import annotations

import logging
import math
from typing import Dict, Literal, Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import LoadResponse, MetaListResponse, QueryFiltersModel
from parts_core.data import VIEWS
from parts_core.errors import DatasetError, EmptyDatasetFailure, LoadFailure, ParseFailure
from parts_core.filters import QueryFilters, normalize_filters
from parts_core.metrics_debug import compute_debug
from parts_core.metrics_duplicates import compute_duplicate_report, report_frame
from parts_core.metrics_matrix import compute_matrix_view, matrix_frame
from parts_core.query import filter_groups, sort_groups, sort_state_from
from parts_core.session import DatasetSession


app = FastAPI(title="Parts Inventory Analysis API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

SESSIONS: Dict[str, DatasetSession] = {name: DatasetSession(view) for name, view in VIEWS.items()}

ERROR_STATUS = {
    LoadFailure: 502,
    ParseFailure: 422,
    EmptyDatasetFailure: 404,
    KeyError: 404,
}


def _filters_from_model(model: Optional[QueryFiltersModel]) -> QueryFilters:
    raw = model.model_dump() if model is not None else {}
    return normalize_filters(raw)


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


def _error(exc: Exception, where: str) -> JSONResponse:
    status = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 500)
    if status == 500:
        logger.exception("%s failed", where)
    else:
        logger.warning("%s failed: %s", where, exc)
    message = exc.args[0] if isinstance(exc, KeyError) and exc.args else str(exc)
    return JSONResponse(status_code=status, content={"error": message, "type": type(exc).__name__})


def get_session(view: str) -> DatasetSession:
    try:
        return SESSIONS[view]
    except KeyError:
        raise KeyError(f"unknown view: {view!r}") from None


@app.post("/datasets/{view}/load")
async def load_view(view: str, source: Optional[str] = Query(default=None), sheet: Optional[str] = Query(default=None)):
    try:
        session = get_session(view)
        outcome = await session.load_async(source, sheet_name=sheet)
        if outcome.status in {"failed", "empty"} and outcome.error is not None:
            return _error(outcome.error, "load")
        rows = len(session.ctx.get("rows", [])) if outcome.status == "ready" else 0
        return _json(LoadResponse(view=view, status=outcome.status, generation=outcome.generation, rows=rows).model_dump())
    except Exception as exc:
        return _error(exc, "load")


@app.get("/meta/{view}/locations")
def meta_locations(view: str):
    try:
        session = get_session(view)
        session.ensure_loaded()
        return _json(MetaListResponse(values=session.get_available_locations()).model_dump())
    except (DatasetError, KeyError) as exc:
        return _error(exc, "meta_locations")


@app.get("/meta/{view}/planners")
def meta_planners(view: str):
    try:
        session = get_session(view)
        session.ensure_loaded()
        return _json(MetaListResponse(values=session.get_available_planners()).model_dump())
    except (DatasetError, KeyError) as exc:
        return _error(exc, "meta_planners")


@app.get("/meta/{view}/metric-columns")
def meta_metric_columns(view: str):
    try:
        session = get_session(view)
        session.ensure_loaded()
        return _json(MetaListResponse(values=session.get_available_metric_columns()).model_dump())
    except (DatasetError, KeyError) as exc:
        return _error(exc, "meta_metric_columns")


@app.post("/duplicates")
def duplicates(
    filters: Optional[QueryFiltersModel] = None,
    sort_key: Optional[str] = Query(default=None),
    sort_direction: Literal["asc", "desc"] = Query(default="asc"),
    selected_part: Optional[str] = Query(default=None),
    top_n: int = Query(default=15, ge=1, le=200),
):
    try:
        session = get_session("duplicates")
        ctx = session.ensure_loaded()
        f = _filters_from_model(filters)
        sort = sort_state_from(sort_key, sort_direction)
        return _json(compute_duplicate_report(f, ctx, sort=sort, selected_part=selected_part or None, top_n=top_n))
    except Exception as exc:
        return _error(exc, "duplicates")


@app.post("/matrix/{view}")
def matrix(
    view: str,
    filters: Optional[QueryFiltersModel] = None,
    sort_key: Optional[str] = Query(default=None),
    sort_direction: Literal["asc", "desc"] = Query(default="asc"),
):
    try:
        session = get_session(view)
        ctx = session.ensure_loaded()
        f = _filters_from_model(filters)
        return _json(compute_matrix_view(f, ctx, sort=sort_state_from(sort_key, sort_direction)))
    except Exception as exc:
        return _error(exc, "matrix")


@app.get("/debug/{view}")
def debug(view: str):
    try:
        session = get_session(view)
        return _json(compute_debug(session.ensure_loaded()))
    except Exception as exc:
        return _error(exc, "debug")


@app.post("/export/{view}")
def export_view(
    view: str,
    filters: Optional[QueryFiltersModel] = None,
    sort_key: Optional[str] = Query(default=None),
    sort_direction: Literal["asc", "desc"] = Query(default="asc"),
):
    try:
        session = get_session(view)
        ctx = session.ensure_loaded()
    except Exception as exc:
        return _error(exc, "export")

    f = _filters_from_model(filters)
    sort = sort_state_from(sort_key, sort_direction)
    if session.view.grouped:
        export_df = report_frame(sort_groups(filter_groups(ctx.get("duplicates", []), f), sort))
    else:
        export_df = matrix_frame(f, ctx, sort)
    filename = f"{view}.csv"
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={filename}"})
