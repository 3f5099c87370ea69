from __future__ import annotations

import math
import random

import pytest

from parts_core.dispersion import compute_stats, deviation_pct
from parts_core.records import NormalizedRecord


def _members(values):
    return [NormalizedRecord(part_id="P", location=f"L{i}", difference=v, row_index=i) for i, v in enumerate(values)]


def test_compute_stats_symmetric_pair():
    stats = compute_stats(_members([10, -10]))

    assert stats.count == 2
    assert stats.mean == 0
    assert stats.variance == 100
    assert stats.std_dev == 10
    assert stats.coefficient_of_variation == 0
    assert (stats.min, stats.max, stats.range) == (-10, 10, 20)


def test_compute_stats_coefficient_of_variation_uses_abs_mean():
    stats = compute_stats(_members([-2, -4, -6]))

    assert stats.mean == pytest.approx(-4)
    assert stats.std_dev == pytest.approx(math.sqrt(8 / 3))
    assert stats.coefficient_of_variation == pytest.approx(math.sqrt(8 / 3) / 4 * 100)
    assert stats.coefficient_of_variation > 0


def test_compute_stats_identical_values():
    stats = compute_stats(_members([5, 5, 5]))
    assert stats.variance == 0
    assert stats.std_dev == 0
    assert stats.range == 0
    assert stats.coefficient_of_variation == 0


@pytest.mark.parametrize("seed", range(5))
def test_compute_stats_matches_definition(seed):
    rng = random.Random(seed)
    values = [rng.uniform(-500, 500) for _ in range(rng.randint(2, 30))]
    stats = compute_stats(_members(values))

    mean = sum(values) / len(values)
    expected_var = sum((v - mean) ** 2 for v in values) / len(values)
    assert stats.mean == pytest.approx(mean, abs=1e-9)
    assert stats.variance == pytest.approx(expected_var, abs=1e-9)
    assert stats.variance >= 0
    assert stats.std_dev == pytest.approx(math.sqrt(stats.variance), abs=1e-9)
    assert stats.range == pytest.approx(stats.max - stats.min)
    assert stats.range >= 0


def test_compute_stats_order_independent():
    a = compute_stats(_members([3, 7, 0, 12]))
    b = compute_stats(_members([12, 0, 7, 3]))
    assert a.mean == pytest.approx(b.mean)
    assert a.variance == pytest.approx(b.variance)
    assert (a.min, a.max) == (b.min, b.max)


def test_compute_stats_custom_metric():
    members = [
        NormalizedRecord(part_id="P", start_count=1, difference=100),
        NormalizedRecord(part_id="P", start_count=3, difference=100),
    ]
    stats = compute_stats(members, metric=lambda r: r.start_count)
    assert stats.mean == 2
    assert stats.range == 2


@pytest.mark.parametrize("values", [[], [4]])
def test_compute_stats_rejects_fewer_than_two(values):
    with pytest.raises(ValueError):
        compute_stats(_members(values))


def test_deviation_pct():
    assert deviation_pct(15, 10) == pytest.approx(50)
    assert deviation_pct(-15, -10) == pytest.approx(-50)
    assert deviation_pct(7, 0) == 0
