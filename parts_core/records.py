from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd


logger = logging.getLogger(__name__)

NA_TOKENS = {"nan", "none", "null", "<na>"}


@dataclass(frozen=True)
class FieldMap:
    """Source column feeding each logical role of a count record."""

    identifier: str = "Part"
    location: str = "Branch"
    description: str = "Description"
    start_count: str = "StartCount"
    end_count: str = "EndCount"
    difference: str = "Difference"
    percent_change: str = "Variance"
    planner: str = "Planner"
    count_date: str = "Date"

    def numeric_fields(self) -> Dict[str, str]:
        return {
            "start_count": self.start_count,
            "end_count": self.end_count,
            "difference": self.difference,
            "percent_change": self.percent_change,
        }


@dataclass(frozen=True)
class NormalizedRecord:
    part_id: str
    location: str = ""
    description: str = ""
    start_count: float = 0.0
    end_count: float = 0.0
    difference: float = 0.0
    percent_change: float = 0.0
    planner: str = ""
    count_date: str = ""
    row_index: int = 0
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class DataQualityWarning:
    """Recoverable per-row issue found while normalizing."""

    row_index: int
    field: str
    raw_value: Any
    reason: str

    def message(self) -> str:
        return f"row {self.row_index}: {self.reason} in '{self.field}' (value={self.raw_value!r})"


@dataclass(frozen=True)
class NormalizeResult:
    records: Tuple[NormalizedRecord, ...]
    warnings: Tuple[DataQualityWarning, ...]


def is_missing(value: object) -> bool:
    if value is None:
        return True
    try:
        if pd.isna(value):
            return True
    except (TypeError, ValueError):
        return False
    return isinstance(value, str) and value.strip().lower() in NA_TOKENS


def as_text(value: object) -> str:
    """Render a cell as text; integral floats lose their trailing '.0'."""
    if is_missing(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_number(value: object) -> Optional[float]:
    """Parse a cell as float, returning None for missing or malformed values."""
    if is_missing(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().replace(",", "")
    if not text:
        return None
    number = pd.to_numeric(text, errors="coerce")
    if pd.isna(number):
        return None
    return float(number)


def _coerce_numeric(
    value: object, *, row_index: int, column: str, warnings: List[DataQualityWarning]
) -> float:
    if is_missing(value) or (isinstance(value, str) and not value.strip()):
        return 0.0
    number = parse_number(value)
    if number is None:
        warnings.append(DataQualityWarning(row_index, column, value, "non-numeric value"))
        return 0.0
    return number


def normalize(rows: Iterable[Mapping[str, Any]], field_map: Optional[FieldMap] = None) -> NormalizeResult:
    """Convert raw parsed rows into `NormalizedRecord`s.

    Never raises on bad cells: malformed numbers become 0 and rows without an
    identifier are dropped, each with a `DataQualityWarning`.
    """
    fm = field_map or FieldMap()
    records: List[NormalizedRecord] = []
    warnings: List[DataQualityWarning] = []

    for idx, row in enumerate(rows):
        part_id = as_text(row.get(fm.identifier))
        if not part_id.strip():
            warnings.append(DataQualityWarning(idx, fm.identifier, row.get(fm.identifier), "missing identifier"))
            continue

        numbers = {
            attr: _coerce_numeric(row.get(column), row_index=idx, column=column, warnings=warnings)
            for attr, column in fm.numeric_fields().items()
        }
        records.append(
            NormalizedRecord(
                part_id=part_id,
                location=as_text(row.get(fm.location)),
                description=as_text(row.get(fm.description)),
                planner=as_text(row.get(fm.planner)),
                count_date=as_text(row.get(fm.count_date)),
                row_index=idx,
                raw=dict(row),
                **numbers,
            )
        )

    for w in warnings:
        logger.warning("data quality: %s", w.message())
    return NormalizeResult(records=tuple(records), warnings=tuple(warnings))
