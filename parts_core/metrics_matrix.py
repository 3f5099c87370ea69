from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from parts_core.data import ViewSpec
from parts_core.filters import QueryFilters
from parts_core.query import SortState, filter_rows, sort_rows


def matrix_rows(filters: QueryFilters, ctx: Dict[str, Any], sort: Optional[SortState] = None) -> List[Mapping[str, Any]]:
    view: ViewSpec = ctx["view"]
    rows = filter_rows(
        ctx.get("rows", []),
        filters,
        identifier_column=view.identifier_column,
        location_column=view.location_column,
        planner_column=view.planner_column,
    )
    return sort_rows(rows, sort or SortState())


def matrix_frame(filters: QueryFilters, ctx: Dict[str, Any], sort: Optional[SortState] = None) -> pd.DataFrame:
    rows = matrix_rows(filters, ctx, sort)
    return pd.DataFrame(rows, columns=ctx.get("columns") or None)


def compute_matrix_view(filters: QueryFilters, ctx: Dict[str, Any], *, sort: Optional[SortState] = None) -> Dict[str, Any]:
    view: ViewSpec = ctx["view"]
    sort = sort or SortState()
    rows = matrix_rows(filters, ctx, sort)
    return {
        "view": view.name,
        "title": view.title,
        "filters": asdict(filters),
        "sort": asdict(sort),
        "summary": {"total_rows": len(ctx.get("rows", [])), "filtered": len(rows)},
        "columns": list(ctx.get("columns", [])),
        "metric_columns": list(ctx.get("metric_columns", [])),
        "rows": [dict(r) for r in rows],
    }
