from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from parts_core.dispersion import DispersionStats, Metric, compute_stats, difference_metric
from parts_core.records import NormalizedRecord


@dataclass(frozen=True)
class PartGroup:
    part_id: str
    members: Tuple[NormalizedRecord, ...]
    stats: Optional[DispersionStats] = None

    @property
    def locations(self) -> List[str]:
        return [m.location for m in self.members]

    @property
    def is_duplicate(self) -> bool:
        return len(self.members) >= 2


def group_by_identifier(records: Iterable[NormalizedRecord]) -> Dict[str, List[NormalizedRecord]]:
    """Partition records by exact `part_id`, keeping first-seen and row order."""
    groups: Dict[str, List[NormalizedRecord]] = {}
    for record in records:
        groups.setdefault(record.part_id, []).append(record)
    return groups


def build_groups(
    groups: Mapping[str, Sequence[NormalizedRecord]], metric: Metric = difference_metric
) -> List[PartGroup]:
    out: List[PartGroup] = []
    for part_id, members in groups.items():
        stats = compute_stats(members, metric) if len(members) >= 2 else None
        out.append(PartGroup(part_id=part_id, members=tuple(members), stats=stats))
    return out


def duplicates_only(
    groups: Mapping[str, Sequence[NormalizedRecord]], metric: Metric = difference_metric
) -> List[PartGroup]:
    """Parts counted at two or more rows, with their dispersion stats."""
    return [
        PartGroup(part_id=part_id, members=tuple(members), stats=compute_stats(members, metric))
        for part_id, members in groups.items()
        if len(members) >= 2
    ]
