from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, List, Sequence

from parts_core.records import NormalizedRecord


Metric = Callable[[NormalizedRecord], float]


def difference_metric(record: NormalizedRecord) -> float:
    return record.difference


@dataclass(frozen=True)
class DispersionStats:
    count: int
    mean: float
    variance: float
    std_dev: float
    coefficient_of_variation: float
    min: float
    max: float
    range: float


def compute_stats(members: Sequence[NormalizedRecord], metric: Metric = difference_metric) -> DispersionStats:
    """Population dispersion of `metric` across a part's members.

    Mean first, then the mean of squared deviations (divisor n). The
    coefficient of variation is std_dev / |mean| as a percentage, and 0 when
    the mean is 0.
    """
    if len(members) < 2:
        raise ValueError(f"dispersion needs at least 2 members, got {len(members)}")

    values: List[float] = [float(metric(m)) for m in members]
    n = len(values)
    mean = sum(values) / n
    variance = sum((v - mean) ** 2 for v in values) / n
    std_dev = math.sqrt(variance)
    cv = (std_dev / abs(mean)) * 100 if mean != 0 else 0.0
    lo = min(values)
    hi = max(values)
    return DispersionStats(
        count=n,
        mean=mean,
        variance=variance,
        std_dev=std_dev,
        coefficient_of_variation=cv,
        min=lo,
        max=hi,
        range=hi - lo,
    )


def deviation_pct(value: float, mean: float) -> float:
    """Deviation of one member from its group mean, as % of |mean|."""
    if mean == 0:
        return 0.0
    return (value - mean) / abs(mean) * 100
