from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class QueryFilters:
    identifier_contains: str = ""
    location_contains: str = ""
    planner_contains: str = ""
    column_non_zero: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.identifier_contains or self.location_contains or self.planner_contains or self.column_non_zero)


def _as_str(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def normalize_filters(raw: Optional[dict]) -> QueryFilters:
    raw = raw or {}
    return QueryFilters(
        identifier_contains=_as_str(raw.get("identifier_contains")),
        location_contains=_as_str(raw.get("location_contains")),
        planner_contains=_as_str(raw.get("planner_contains")),
        column_non_zero=_as_str(raw.get("column_non_zero")),
    )
