# Shared pytest fixtures
from __future__ import annotations

from pathlib import Path

import pytest

from parts_core.data import VIEWS, build_context, load_dataset
from parts_core.records import normalize


SUMMARY_CSV = """Date,Part,Description,Branch,StartCount,EndCount,Difference,Variance,Planner
2024-01-01,A100,Widget,North,10,20,10,100,Alice
2024-01-01,A100,Widget,South,30,20,-10,-33.3,Bob
2024-01-01,B200,Gear,North,5,10,5,100,Alice
2024-01-01,C300,Bolt,East,1,4,3,300,Carol
2024-01-01,C300,Bolt,West,2,9,7,350,Carol
2024-01-01,C300,Bolt,North,0,abc,abc,0,Alice
"""

MATRIX_CSV = """Part,North,South,East
A100,5,0,-2
B200,0,0,0
C300,x,3,1
D400,,1,0
"""


@pytest.fixture()
def summary_csv(tmp_path: Path) -> Path:
    p = tmp_path / "NewSummary.csv"
    p.write_text(SUMMARY_CSV, encoding="utf-8")
    return p


@pytest.fixture()
def matrix_csv(tmp_path: Path) -> Path:
    p = tmp_path / "PartVarianceMatrix.csv"
    p.write_text(MATRIX_CSV, encoding="utf-8")
    return p


@pytest.fixture()
def summary_rows() -> list[dict]:
    return [
        {"Part": "A", "Branch": "X", "Difference": 10},
        {"Part": "A", "Branch": "Y", "Difference": -10},
        {"Part": "B", "Branch": "X", "Difference": 5},
    ]


@pytest.fixture()
def summary_records(summary_rows):
    return normalize(summary_rows).records


@pytest.fixture()
def duplicates_ctx(summary_csv: Path) -> dict:
    return build_context(load_dataset(str(summary_csv)), VIEWS["duplicates"])


@pytest.fixture()
def matrix_ctx(matrix_csv: Path) -> dict:
    return build_context(load_dataset(str(matrix_csv)), VIEWS["part_matrix"])


@pytest.fixture()
def data_dir(tmp_path: Path, summary_csv: Path, matrix_csv: Path, monkeypatch) -> Path:
    monkeypatch.setattr("parts_core.data.DATA_DIR", tmp_path)
    return tmp_path
