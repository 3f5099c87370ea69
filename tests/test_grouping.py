from __future__ import annotations

from collections import Counter

from parts_core.grouping import build_groups, duplicates_only, group_by_identifier
from parts_core.records import NormalizedRecord, normalize


def _rec(part_id: str, location: str = "", difference: float = 0.0, idx: int = 0) -> NormalizedRecord:
    return NormalizedRecord(part_id=part_id, location=location, difference=difference, row_index=idx)


def test_group_by_identifier_preserves_first_seen_and_member_order():
    records = [_rec("B", "1", idx=0), _rec("A", "2", idx=1), _rec("B", "3", idx=2), _rec("A", "4", idx=3)]
    groups = group_by_identifier(records)

    assert list(groups) == ["B", "A"]
    assert [r.location for r in groups["B"]] == ["1", "3"]
    assert [r.location for r in groups["A"]] == ["2", "4"]


def test_grouping_is_case_sensitive():
    groups = group_by_identifier([_rec("abc"), _rec("ABC"), _rec("abc")])
    assert {k: len(v) for k, v in groups.items()} == {"abc": 2, "ABC": 1}


def test_duplicates_only_excludes_single_occurrence(summary_records):
    dups = duplicates_only(group_by_identifier(summary_records))

    assert [g.part_id for g in dups] == ["A"]
    stats = dups[0].stats
    assert stats is not None
    assert stats.mean == 0
    assert stats.std_dev == 10
    assert stats.range == 20


def test_duplicates_only_member_count_matches_repeated_records():
    ids = ["A", "B", "A", "C", "D", "C", "C", "E"]
    records = [_rec(p, difference=i, idx=i) for i, p in enumerate(ids)]
    dups = duplicates_only(group_by_identifier(records))

    counts = Counter(ids)
    expected = sum(n for n in counts.values() if n >= 2)
    assert sum(len(g.members) for g in dups) == expected
    member_ids = [m.row_index for g in dups for m in g.members]
    assert len(member_ids) == len(set(member_ids))


def test_build_groups_keeps_singletons_without_stats(summary_records):
    groups = build_groups(group_by_identifier(summary_records))

    by_id = {g.part_id: g for g in groups}
    assert by_id["A"].stats is not None
    assert by_id["A"].is_duplicate
    assert by_id["B"].stats is None
    assert not by_id["B"].is_duplicate
    assert by_id["A"].locations == ["X", "Y"]


def test_grouping_empty_input():
    assert group_by_identifier([]) == {}
    assert duplicates_only({}) == []


def test_group_members_come_from_normalized_rows():
    result = normalize([{"Part": "Z", "Branch": "b1"}, {"Part": "Z", "Branch": "b2"}])
    (group,) = duplicates_only(group_by_identifier(result.records))
    assert group.members == result.records
