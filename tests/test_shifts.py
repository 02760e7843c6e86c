"""Tests for shift grouping, name resolution and metrics."""

import time
from dataclasses import replace

import pytest

from conftest import make_record
from whoson.domain import Person, RawAssignment
from whoson.shifts import (
    UNASSIGNED,
    aggregate,
    count_clocked_in,
    count_total_assigned,
    filter_by_workgroup,
    index_people,
    is_valid_assignment,
    resolve_name,
    summarize,
)


class TestIsValidAssignment:
    def test_complete_record_is_valid(self):
        assert is_valid_assignment(make_record("s1", "p1"))

    @pytest.mark.parametrize("field", ["id", "name", "local_start_date", "local_end_date"])
    def test_missing_required_field_is_invalid(self, field):
        assert not is_valid_assignment(replace(make_record("s1", "p1"), **{field: ""}))

    def test_optional_fields_may_be_empty(self):
        record = make_record("s1", subject="", location="", workgroup_id="")
        assert is_valid_assignment(record)

    def test_non_record_is_invalid(self):
        assert not is_valid_assignment(None)
        assert not is_valid_assignment({"id": "s1"})


class TestResolveName:
    @pytest.fixture
    def index(self, people):
        extra = [
            Person(id="p4", family_name="Davis"),
            Person(id="p5", display_name="   ", given_name="Emma", family_name="Evans"),
            Person(id="p6"),
            Person(id="p7", display_name="  Frank F.  "),
        ]
        return index_people(people + extra)

    def test_empty_id_is_unassigned(self, index):
        assert resolve_name("", index) == UNASSIGNED

    def test_unknown_id_is_unassigned(self, index):
        assert resolve_name("nobody", index) == UNASSIGNED

    def test_display_name_wins(self, index):
        assert resolve_name("p1", index) == "Alice A."

    def test_display_name_is_trimmed(self, index):
        assert resolve_name("p7", index) == "Frank F."

    def test_blank_display_name_falls_back_to_full_name(self, index):
        assert resolve_name("p5", index) == "Emma Evans"

    def test_given_and_family(self, index):
        assert resolve_name("p2", index) == "Bob Baker"

    def test_given_only(self, index):
        assert resolve_name("p3", index) == "Carol"

    def test_family_only(self, index):
        assert resolve_name("p4", index) == "Davis"

    def test_no_names_at_all(self, index):
        assert resolve_name("p6", index) == UNASSIGNED


class TestAggregate:
    def test_empty_input(self):
        assert aggregate([], []) == []

    def test_same_key_collapses_into_one_group(self, people):
        """Two people on the same shift come back as one group (scenario A)."""
        records = [make_record("s1", "p1", True), make_record("s2", "p2", False)]

        groups = aggregate(records, people)

        assert len(groups) == 1
        group = groups[0]
        assert group.assigned_person_ids == ["p1", "p2"]
        assert group.assigned_person_names == ["Alice A.", "Bob Baker"]
        assert group.clock_statuses == [True, False]
        assert count_clocked_in(groups) == 1

    def test_null_clock_status_is_false(self, people):
        groups = aggregate([make_record("s1", "p1", None)], people)
        assert groups[0].clock_statuses == [False]

    def test_truthy_non_bool_clock_status_is_false(self, people):
        record = RawAssignment.from_dict({
            "id": "s1", "name": "Security", "local_start_date": "a", "local_end_date": "b",
            "covering_member": "p1", "clocked_in": "yes",
        })
        assert aggregate([record], people)[0].clock_statuses == [False]

    def test_group_keeps_first_record_fields(self, people):
        groups = aggregate([make_record("s1", "p1"), make_record("s2", "p2")], people)
        group = groups[0]
        assert group.id == "s1"
        assert group.name == "Security"
        assert group.workgroup_id == "wg-001"
        assert group.location == "Main Gate"

    def test_group_contains_every_distinct_person(self, people):
        records = [make_record(f"s{i}", f"p{i % 3 + 1}") for i in range(9)]

        groups = aggregate(records, people)

        assert len(groups) == 1
        assert set(groups[0].assigned_person_ids) == {"p1", "p2", "p3"}

    @pytest.mark.parametrize("field, value", [
        ("name", "Medical"),
        ("local_start_date", "2024-01-15T09:00:00"),
        ("local_end_date", "2024-01-15T17:00:00"),
        ("workgroup_id", "wg-002"),
        ("subject", "First Aid"),
        ("location", "Tent A"),
    ])
    def test_any_key_field_difference_splits_groups(self, people, field, value):
        records = [make_record("s1", "p1"), make_record("s2", "p2", **{field: value})]

        groups = aggregate(records, people)

        assert len(groups) == 2
        assert [g.assigned_person_ids for g in groups] == [["p1"], ["p2"]]

    def test_key_fields_are_not_normalized(self, people):
        records = [make_record("s1", "p1"), make_record("s2", "p2", location="main gate")]
        assert len(aggregate(records, people)) == 2

    def test_duplicate_person_is_recorded_once(self, people):
        records = [make_record("s1", "p1", True), make_record("s2", "p1", True)]

        groups = aggregate(records, people)

        assert groups[0].assigned_person_ids == ["p1"]
        assert groups[0].clock_statuses == [True]

    def test_duplicate_person_keeps_first_clock_status(self, people):
        records = [make_record("s1", "p1", False), make_record("s2", "p1", True)]
        assert aggregate(records, people)[0].clock_statuses == [False]

    def test_unfilled_first_record_gives_empty_group(self, people):
        groups = aggregate([make_record("s1")], people)

        assert len(groups) == 1
        assert groups[0].assignments == []
        assert groups[0].assigned_person_ids == []
        assert groups[0].assigned_person_names == []
        assert groups[0].clock_statuses == []

    def test_unfilled_slot_after_filled_one_adds_nobody(self, people):
        groups = aggregate([make_record("s1", "p1"), make_record("s2")], people)
        assert groups[0].assigned_person_ids == ["p1"]

    def test_unknown_person_is_named_unassigned(self):
        groups = aggregate([make_record("s1", "ghost")], [])
        assert groups[0].assigned_person_names == [UNASSIGNED]

    def test_invalid_records_are_excluded(self, people):
        records = [
            make_record("", "p3"),
            make_record("s1", "p1"),
            replace(make_record("s2", "p2"), name=""),
            replace(make_record("s3", "p3"), local_start_date=""),
            replace(make_record("s4", "p3"), local_end_date=""),
            make_record("s5", "p2"),
        ]

        groups = aggregate(records, people)

        assert len(groups) == 1
        assert groups[0].id == "s1"
        assert groups[0].assigned_person_ids == ["p1", "p2"]

    def test_invalid_only_input_gives_no_groups(self, people):
        assert aggregate([make_record("", "p1")], people) == []

    def test_output_follows_first_seen_order(self, people):
        records = [
            make_record("s1", "p1", name="B"),
            make_record("s2", "p1", name="A"),
            make_record("s3", "p2", name="B"),
            make_record("s4", "p1", name="C"),
        ]
        assert [g.name for g in aggregate(records, people)] == ["B", "A", "C"]

    def test_parallel_views_stay_aligned(self, people):
        records = [
            make_record(f"s{i}", f"p{i % 5}", i % 2 == 0, name=f"shift-{i % 4}")
            for i in range(40)
        ]
        for group in aggregate(records, people):
            ids = group.assigned_person_ids
            assert len(ids) == len(group.assigned_person_names) == len(group.clock_statuses)
            assert len(ids) == len(set(ids))

    def test_input_is_not_mutated(self, people):
        records = [make_record("s1", "p1"), make_record("s2", "p2"), make_record("", "p3")]
        snapshot = list(records)

        aggregate(records, people)

        assert records == snapshot

    def test_thousand_records_group_quickly(self, people):
        records = [
            make_record(f"s{i}", f"p{i}", i % 3 == 0, name=f"shift-{i % 50}")
            for i in range(1000)
        ]
        best = min(_timed(aggregate, records, people) for _ in range(3))
        assert best < 0.05


def _timed(fn, *args):
    started = time.perf_counter()
    fn(*args)
    return time.perf_counter() - started


class TestMetrics:
    def test_empty(self):
        assert count_clocked_in([]) == 0
        assert count_total_assigned([]) == 0

    def test_counts_across_groups(self, people):
        records = [
            make_record("s1", "p1", True),
            make_record("s2", "p2", True),
            make_record("s3", "p3", False),
            make_record("s4", "p1", None, name="Medical"),
            make_record("s5", name="Parking"),
        ]
        groups = aggregate(records, people)

        assert count_clocked_in(groups) == 2
        assert count_total_assigned(groups) == 4

    def test_summarize(self, people):
        records = [make_record("s1", "p1", True), make_record("s2", "p2"), make_record("", "p3")]
        groups = aggregate(records, people)

        assert summarize(records, groups) == {
            "original_shift_count": 3,
            "grouped_shift_count": 1,
            "clocked_in_count": 1,
            "total_assigned_count": 2,
        }


class TestFilterByWorkgroup:
    @pytest.fixture
    def records(self):
        return [
            make_record("s1", workgroup_id="wg-001"),
            make_record("s2", workgroup_id="wg-002"),
            make_record("s3", workgroup_id="wg-001"),
        ]

    @pytest.mark.parametrize("workgroup", [None, ""])
    def test_no_workgroup_returns_everything(self, records, workgroup):
        result = filter_by_workgroup(records, workgroup)

        assert result == records
        assert result is not records

    def test_filters_and_keeps_order(self, records):
        assert [r.id for r in filter_by_workgroup(records, "wg-001")] == ["s1", "s3"]

    def test_unknown_workgroup(self, records):
        assert filter_by_workgroup(records, "wg-999") == []

    def test_works_on_groups(self, people, records):
        groups = aggregate(records, people)
        assert [g.workgroup_id for g in filter_by_workgroup(groups, "wg-002")] == ["wg-002"]

    def test_source_is_untouched(self, records):
        snapshot = list(records)

        result = filter_by_workgroup(records, None)
        result.clear()
        filter_by_workgroup(records, "wg-001")

        assert records == snapshot
