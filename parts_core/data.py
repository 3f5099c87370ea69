from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import pandas as pd

from parts_core.errors import EmptyDatasetFailure, LoadFailure, ParseFailure
from parts_core.grouping import build_groups, duplicates_only, group_by_identifier
from parts_core.records import FieldMap, NormalizedRecord, as_text, normalize


logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parents[1]

SUMMARY_FILE = "NewSummary.csv"
PART_MATRIX_FILE = "PartVarianceMatrix.csv"
EXCEL_SUFFIXES = {".xlsx", ".xlsm"}


@dataclass(frozen=True)
class ViewSpec:
    """Which dataset a view reads and which columns play which role."""

    name: str
    title: str
    default_source: str
    identifier_column: str
    location_column: Optional[str] = None
    planner_column: Optional[str] = None
    grouped: bool = False
    non_metric_columns: Tuple[str, ...] = ()
    field_map: FieldMap = field(default_factory=FieldMap)


VIEWS: Dict[str, ViewSpec] = {
    "duplicates": ViewSpec(
        name="duplicates",
        title="Duplicate Parts",
        default_source=SUMMARY_FILE,
        identifier_column="Part",
        location_column="Branch",
        planner_column="Planner",
        grouped=True,
        non_metric_columns=("Date", "Part", "Description", "Branch", "Planner"),
    ),
    "part_matrix": ViewSpec(
        name="part_matrix",
        title="Part Variances",
        default_source=PART_MATRIX_FILE,
        identifier_column="Part",
        non_metric_columns=("Part",),
    ),
    "planner_matrix": ViewSpec(
        name="planner_matrix",
        title="Planner Variances",
        default_source=SUMMARY_FILE,
        identifier_column="Part number",
        planner_column="Planner",
        non_metric_columns=("Planner", "Part number"),
    ),
}


@dataclass(frozen=True)
class Dataset:
    rows: Tuple[Dict[str, Any], ...]
    columns: Tuple[str, ...]
    source: str


def get_view(name: str) -> ViewSpec:
    try:
        return VIEWS[name]
    except KeyError:
        raise KeyError(f"unknown view: {name!r} (expected one of {sorted(VIEWS)})") from None


def is_url(source: str) -> bool:
    return str(source).lower().startswith(("http://", "https://"))


def resolve_source(view: ViewSpec, source: Optional[str] = None) -> str:
    src = source or view.default_source
    if is_url(src):
        return src
    path = Path(src)
    if not path.is_absolute():
        path = DATA_DIR / path
    return str(path)


def file_signature(path: Path) -> Tuple[str, float, int]:
    stat = path.stat()
    return (str(path), stat.st_mtime, stat.st_size)


def frame_to_rows(df: pd.DataFrame) -> List[Dict[str, Any]]:
    clean = df.astype(object).where(df.notna(), None)
    return clean.to_dict(orient="records")


def _read_frame(source: str, sheet_name: Optional[str] = None) -> pd.DataFrame:
    if Path(source.split("?", 1)[0]).suffix.lower() in EXCEL_SUFFIXES:
        return pd.read_excel(source, sheet_name=sheet_name or 0, dtype=str)
    return pd.read_csv(source, dtype=str, skip_blank_lines=True)


def _parse_source(source: str, sheet_name: Optional[str] = None) -> Dataset:
    try:
        df = _read_frame(source, sheet_name)
    except pd.errors.EmptyDataError as exc:
        raise EmptyDatasetFailure(f"No data found in {source}") from exc
    except (pd.errors.ParserError, UnicodeDecodeError, zipfile.BadZipFile, ValueError) as exc:
        raise ParseFailure(f"Error parsing {source}: {exc}") from exc
    except (OSError, ImportError) as exc:
        raise LoadFailure(f"Error loading {source}: {exc}") from exc

    df = df.dropna(how="all")
    columns = tuple(str(c) for c in df.columns)
    df.columns = list(columns)
    if df.empty:
        raise EmptyDatasetFailure(f"No data found in {source}")
    return Dataset(rows=tuple(frame_to_rows(df)), columns=columns, source=source)


@lru_cache(maxsize=8)
def _load_local_cached(signature: Tuple[str, float, int], sheet_name: Optional[str]) -> Dataset:
    path, _, _ = signature
    return _parse_source(path, sheet_name)


def load_dataset(source: str, sheet_name: Optional[str] = None) -> Dataset:
    """Read a CSV/XLSX path or URL into raw rows.

    Raises LoadFailure, ParseFailure or EmptyDatasetFailure.
    """
    if is_url(source):
        logger.info("loading dataset from %s", source)
        return _parse_source(source, sheet_name)

    path = Path(source)
    if not path.exists():
        raise LoadFailure(f"Error loading {source}: file not found")
    if not path.is_file():
        raise LoadFailure(f"Error loading {source}: not a file")
    dataset = _load_local_cached(file_signature(path), sheet_name)
    logger.info("loaded %s rows=%d columns=%d", path.name, len(dataset.rows), len(dataset.columns))
    return dataset


# ---------------- Distinct-value lists ----------------
def distinct_values(values: Iterable[object]) -> List[str]:
    """First-seen order, deduplicated, falsy values dropped."""
    seen: Dict[str, None] = {}
    for v in values:
        text = as_text(v)
        if text and text not in seen:
            seen[text] = None
    return list(seen)


def available_locations(records: Iterable[NormalizedRecord]) -> List[str]:
    return distinct_values(r.location for r in records)


def available_planners(records: Iterable[NormalizedRecord]) -> List[str]:
    return distinct_values(r.planner for r in records)


def available_metric_columns(columns: Iterable[str], view: ViewSpec) -> List[str]:
    excluded = set(view.non_metric_columns)
    return [c for c in distinct_values(columns) if c not in excluded]


# ---------------- Context ----------------
def build_context(dataset: Dataset, view: ViewSpec) -> Dict[str, object]:
    """Everything a view needs, rebuilt from scratch for one loaded dataset."""
    rows: List[Mapping[str, Any]] = list(dataset.rows)
    records: Tuple[NormalizedRecord, ...] = ()
    warnings: tuple = ()
    groups: Dict[str, List[NormalizedRecord]] = {}
    all_groups: list = []
    duplicates: list = []
    planners: List[str] = []

    if view.grouped:
        result = normalize(rows, view.field_map)
        records, warnings = result.records, result.warnings
        groups = group_by_identifier(records)
        all_groups = build_groups(groups)
        duplicates = duplicates_only(groups)
        locations = available_locations(records)
        planners = available_planners(records)
    else:
        locations = distinct_values(r.get(view.location_column) for r in rows) if view.location_column else []
        if view.planner_column:
            planners = distinct_values(r.get(view.planner_column) for r in rows)

    metric_columns = available_metric_columns(dataset.columns, view)
    if not view.location_column and not view.planner_column:
        # matrix columns are the locations themselves
        locations = list(metric_columns)

    return {
        "view": view,
        "source": dataset.source,
        "columns": list(dataset.columns),
        "rows": rows,
        "records": records,
        "warnings": warnings,
        "all_groups": all_groups,
        "duplicates": duplicates,
        "locations": locations,
        "planners": planners,
        "metric_columns": metric_columns,
    }


def load_view_data(
    view: Union[ViewSpec, str], source: Optional[str] = None, sheet_name: Optional[str] = None
) -> Dict[str, object]:
    if isinstance(view, str):
        view = get_view(view)
    dataset = load_dataset(resolve_source(view, source), sheet_name=sheet_name)
    return build_context(dataset, view)
