from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from parts_core.charts import member_difference_chart, range_by_part_chart, to_vega_spec
from parts_core.dispersion import deviation_pct
from parts_core.filters import QueryFilters
from parts_core.grouping import PartGroup
from parts_core.query import SortState, filter_groups, group_row, sort_groups


MEMBER_COLUMNS = ["location", "description", "start_count", "end_count", "difference", "deviation_pct"]


def member_rows(group: PartGroup) -> List[Dict[str, Any]]:
    mean = group.stats.mean if group.stats else 0.0
    return [
        {
            "location": m.location,
            "description": m.description,
            "start_count": m.start_count,
            "end_count": m.end_count,
            "difference": m.difference,
            "deviation_pct": deviation_pct(m.difference, mean),
        }
        for m in group.members
    ]


def report_frame(groups: Sequence[PartGroup]) -> pd.DataFrame:
    """One row per member, with the owning group's stats repeated."""
    rows: List[Dict[str, Any]] = []
    for g in groups:
        summary = group_row(g)
        summary.pop("locations", None)
        for member in member_rows(g):
            rows.append({**summary, **member})
    if not rows:
        return pd.DataFrame(columns=["part_id", "members", "mean", "std_dev", "range"] + MEMBER_COLUMNS)
    return pd.DataFrame(rows)


def compute_duplicate_report(
    filters: QueryFilters,
    ctx: Dict[str, Any],
    *,
    sort: Optional[SortState] = None,
    selected_part: Optional[str] = None,
    top_n: int = 15,
) -> Dict[str, Any]:
    duplicates: List[PartGroup] = list(ctx.get("duplicates", []))
    sort = sort or SortState()

    filtered = sort_groups(filter_groups(duplicates, filters), sort)
    table = []
    for g in filtered:
        row = group_row(g)
        row["locations"] = g.locations
        row["counts"] = member_rows(g)
        table.append(row)

    charts: Dict[str, Any] = {}
    if filtered:
        summary = pd.DataFrame([group_row(g) for g in filtered])
        top = summary.sort_values("range", ascending=False, kind="stable").head(max(1, int(top_n)))
        charts["range_by_part"] = to_vega_spec(range_by_part_chart(top))

    by_id = {g.part_id: g for g in filtered}
    if selected_part is None and filtered:
        selected_part = max(filtered, key=lambda g: g.stats.range if g.stats else 0.0).part_id
    drill = {"part_id": selected_part, "chart": None}
    chosen = by_id.get(selected_part) if selected_part is not None else None
    if chosen is not None and chosen.stats is not None:
        members = pd.DataFrame(member_rows(chosen))
        drill["chart"] = to_vega_spec(member_difference_chart(members, chosen.stats.mean))

    return {
        "filters": asdict(filters),
        "sort": asdict(sort),
        "summary": {
            "total_duplicates": len(duplicates),
            "filtered": len(filtered),
            "total_records": len(ctx.get("records", ())),
            "warnings": len(ctx.get("warnings", ())),
        },
        "locations": list(ctx.get("locations", [])),
        "table": table,
        "charts": charts,
        "drilldown": drill,
    }
