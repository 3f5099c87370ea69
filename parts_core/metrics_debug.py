from __future__ import annotations

from collections import Counter
from typing import Any, Dict

from parts_core.data import ViewSpec


def compute_debug(ctx: Dict[str, Any], *, sample_size: int = 20) -> Dict[str, Any]:
    view: ViewSpec = ctx["view"]
    warnings = list(ctx.get("warnings", ()))
    by_reason = Counter(w.reason for w in warnings)
    by_field = Counter(w.field for w in warnings)
    all_groups = list(ctx.get("all_groups", []))
    singles = [g for g in all_groups if not g.is_duplicate]

    return {
        "view": view.name,
        "source": ctx.get("source"),
        "row_counts": {
            "raw_rows": len(ctx.get("rows", [])),
            "records": len(ctx.get("records", ())),
            "parts": len(all_groups),
            "duplicate_parts": len(ctx.get("duplicates", [])),
            "single_location_parts": len(singles),
        },
        "cleaning_checks": {
            "rows_missing_identifier": int(by_reason.get("missing identifier", 0)),
            "non_numeric_values": int(by_reason.get("non-numeric value", 0)),
        },
        "warnings_by_field": dict(by_field),
        "warning_samples": [
            {"row_index": w.row_index, "field": w.field, "raw_value": w.raw_value, "reason": w.reason}
            for w in warnings[:sample_size]
        ],
        "single_location_samples": [
            {"part_id": g.part_id, "location": g.members[0].location} for g in singles[:sample_size]
        ],
        "columns": list(ctx.get("columns", [])),
    }
