from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from parts_core.data import ViewSpec, load_view_data
from parts_core.errors import DatasetError, EmptyDatasetFailure, LoadFailure
from parts_core.filters import QueryFilters
from parts_core.grouping import PartGroup
from parts_core.query import SortState, filter_groups, filter_rows, sort_groups, sort_rows


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadOutcome:
    status: str  # "ready" | "empty" | "failed" | "stale"
    generation: int
    error: Optional[DatasetError] = None


class DatasetSession:
    """Current dataset snapshot for one view.

    Loads are numbered; a result is applied only if no newer load was started
    in the meantime, so the last *started* load wins.
    """

    def __init__(self, view: ViewSpec):
        self.view = view
        self.status = "idle"
        self.error: Optional[DatasetError] = None
        self.sort_state = SortState()
        self._ctx: Optional[Dict[str, object]] = None
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def ctx(self) -> Dict[str, object]:
        if self._ctx is None:
            if self.error is not None:
                raise self.error
            raise EmptyDatasetFailure(f"no dataset loaded for view {self.view.name!r}")
        return self._ctx

    @property
    def is_loaded(self) -> bool:
        return self._ctx is not None

    def begin_load(self) -> int:
        self._generation += 1
        self.status = "loading"
        return self._generation

    def apply(self, generation: int, ctx: Optional[Dict[str, object]] = None, error: Optional[DatasetError] = None) -> LoadOutcome:
        if generation != self._generation:
            logger.info("discarding stale load view=%s generation=%d current=%d", self.view.name, generation, self._generation)
            return LoadOutcome(status="stale", generation=generation, error=error)

        if error is not None:
            self.status = "empty" if isinstance(error, EmptyDatasetFailure) else "failed"
            self.error = error
            self._ctx = None
            logger.error("load failed view=%s: %s", self.view.name, error)
        else:
            self.status = "ready"
            self.error = None
            self._ctx = ctx
        self.sort_state = SortState()
        return LoadOutcome(status=self.status, generation=generation, error=error)

    def _read(self, source: Optional[str], sheet_name: Optional[str]) -> Dict[str, object]:
        try:
            return load_view_data(self.view, source, sheet_name=sheet_name)
        except DatasetError:
            raise
        except Exception as exc:
            logger.exception("unexpected error loading view=%s", self.view.name)
            raise LoadFailure(f"Error loading {source or self.view.default_source}: {exc}") from exc

    def load(self, source: Optional[str] = None, sheet_name: Optional[str] = None) -> LoadOutcome:
        generation = self.begin_load()
        try:
            ctx = self._read(source, sheet_name)
        except DatasetError as exc:
            return self.apply(generation, error=exc)
        return self.apply(generation, ctx=ctx)

    async def load_async(self, source: Optional[str] = None, sheet_name: Optional[str] = None) -> LoadOutcome:
        generation = self.begin_load()
        try:
            ctx = await asyncio.to_thread(self._read, source, sheet_name)
        except DatasetError as exc:
            return self.apply(generation, error=exc)
        return self.apply(generation, ctx=ctx)

    def ensure_loaded(self) -> Dict[str, object]:
        if self._ctx is None and self.status == "idle":
            self.load()
        return self.ctx

    # ---------------- Views ----------------
    def sort(self, key: str) -> SortState:
        self.sort_state = self.sort_state.toggle(key)
        return self.sort_state

    def get_duplicate_report(self, filters: Optional[QueryFilters] = None) -> List[PartGroup]:
        groups: List[PartGroup] = list(self.ctx.get("duplicates", []))
        groups = filter_groups(groups, filters or QueryFilters())
        return sort_groups(groups, self.sort_state)

    def get_flat_view(self, filters: Optional[QueryFilters] = None, sort: Optional[SortState] = None) -> List[Mapping[str, Any]]:
        rows = filter_rows(
            self.ctx.get("rows", []),
            filters or QueryFilters(),
            identifier_column=self.view.identifier_column,
            location_column=self.view.location_column,
            planner_column=self.view.planner_column,
        )
        return sort_rows(rows, sort if sort is not None else self.sort_state)

    def get_available_locations(self) -> List[str]:
        return list(self.ctx.get("locations", []))

    def get_available_planners(self) -> List[str]:
        return list(self.ctx.get("planners", []))

    def get_available_metric_columns(self) -> List[str]:
        return list(self.ctx.get("metric_columns", []))
