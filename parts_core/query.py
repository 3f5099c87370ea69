"""Filtering and sorting shared by the grouped report and the flat matrices.

Every function returns a new list; inputs are never reordered in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Tuple

from parts_core.filters import QueryFilters
from parts_core.grouping import PartGroup
from parts_core.records import is_missing, parse_number


Direction = Literal["asc", "desc"]

GROUP_COLUMNS = [
    "part_id",
    "locations",
    "members",
    "mean",
    "variance",
    "std_dev",
    "coefficient_of_variation",
    "min",
    "max",
    "range",
]


def _contains(haystack: object, needle: str) -> bool:
    if is_missing(haystack):
        return False
    return needle.lower() in str(haystack).lower()


def is_non_zero(value: object) -> bool:
    number = parse_number(value)
    return number is not None and number != 0


# ---------------- Filtering ----------------
def group_matches(group: PartGroup, filters: QueryFilters) -> bool:
    if filters.identifier_contains and not _contains(group.part_id, filters.identifier_contains):
        return False
    if filters.location_contains and not any(_contains(m.location, filters.location_contains) for m in group.members):
        return False
    if filters.planner_contains and not any(_contains(m.planner, filters.planner_contains) for m in group.members):
        return False
    if filters.column_non_zero and not any(is_non_zero(m.raw.get(filters.column_non_zero)) for m in group.members):
        return False
    return True


def filter_groups(groups: Iterable[PartGroup], filters: QueryFilters) -> List[PartGroup]:
    if filters.is_empty:
        return list(groups)
    return [g for g in groups if group_matches(g, filters)]


def row_matches(
    row: Mapping[str, Any],
    filters: QueryFilters,
    *,
    identifier_column: str,
    location_column: Optional[str] = None,
    planner_column: Optional[str] = None,
) -> bool:
    if filters.identifier_contains and not _contains(row.get(identifier_column), filters.identifier_contains):
        return False
    if filters.location_contains:
        if not location_column or not _contains(row.get(location_column), filters.location_contains):
            return False
    if filters.planner_contains:
        if not planner_column or not _contains(row.get(planner_column), filters.planner_contains):
            return False
    if filters.column_non_zero and not is_non_zero(row.get(filters.column_non_zero)):
        return False
    return True


def filter_rows(
    rows: Iterable[Mapping[str, Any]],
    filters: QueryFilters,
    *,
    identifier_column: str,
    location_column: Optional[str] = None,
    planner_column: Optional[str] = None,
) -> List[Mapping[str, Any]]:
    return [
        r
        for r in rows
        if row_matches(
            r,
            filters,
            identifier_column=identifier_column,
            location_column=location_column,
            planner_column=planner_column,
        )
    ]


# ---------------- Sorting ----------------
@dataclass(frozen=True)
class SortState:
    """Column sort toggle. `key=None` means unsorted."""

    key: Optional[str] = None
    direction: Direction = "asc"

    @property
    def is_sorted(self) -> bool:
        return self.key is not None

    def toggle(self, key: str) -> "SortState":
        if self.key == key and self.direction == "asc":
            return SortState(key=key, direction="desc")
        return SortState(key=key, direction="asc")


def sort_state_from(key: Optional[str], direction: Optional[str] = None) -> SortState:
    if not key:
        return SortState()
    return SortState(key=key, direction="desc" if (direction or "").lower() == "desc" else "asc")


def _is_blank(value: object) -> bool:
    return is_missing(value) or (isinstance(value, str) and not value.strip())


def _compare_key(value: object) -> Tuple[int, float, str]:
    number = parse_number(value)
    if number is not None:
        return (0, number, "")
    return (1, 0.0, str(value))


def sort_rows(
    rows: Iterable[Any],
    state: SortState,
    getter: Optional[Callable[[Any, str], Any]] = None,
) -> List[Any]:
    """Stable sort by `state.key`.

    Numbers compare numerically and come before text, text compares
    lexicographically, blanks go last whichever the direction.
    """
    items = list(rows)
    if not state.is_sorted:
        return items
    get = getter or (lambda row, key: row.get(key))

    present: List[Tuple[Any, Any]] = []
    blanks: List[Any] = []
    for item in items:
        value = get(item, state.key)
        if _is_blank(value):
            blanks.append(item)
        else:
            present.append((value, item))
    present.sort(key=lambda pair: _compare_key(pair[0]), reverse=state.direction == "desc")
    return [item for _, item in present] + blanks


def group_row(group: PartGroup) -> Dict[str, Any]:
    """Flat summary of a group, keyed by the report's displayed columns."""
    stats = group.stats
    return {
        "part_id": group.part_id,
        "locations": ", ".join(group.locations),
        "members": len(group.members),
        "mean": stats.mean if stats else None,
        "variance": stats.variance if stats else None,
        "std_dev": stats.std_dev if stats else None,
        "coefficient_of_variation": stats.coefficient_of_variation if stats else None,
        "min": stats.min if stats else None,
        "max": stats.max if stats else None,
        "range": stats.range if stats else None,
    }


def sort_groups(groups: Sequence[PartGroup], state: SortState) -> List[PartGroup]:
    return sort_rows(groups, state, getter=lambda g, key: group_row(g).get(key))
