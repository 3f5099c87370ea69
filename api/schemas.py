from __future__ import annotations

from typing import List

from pydantic import BaseModel


class QueryFiltersModel(BaseModel):
    identifier_contains: str = ""
    location_contains: str = ""
    planner_contains: str = ""
    column_non_zero: str = ""


class LoadResponse(BaseModel):
    view: str
    status: str
    generation: int
    rows: int = 0


class MetaListResponse(BaseModel):
    values: List[str]
