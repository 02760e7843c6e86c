# whoson/shifts.py
"""Shift grouping.

Upstream sends one record per assigned person, so a five-person shift shows
up as five records that differ only in ``covering_member``. ``aggregate``
collapses those into one ShiftGroup per grouping key in a single pass.
"""
import logging
import time
from typing import Iterable, Optional, TypeVar

from .domain import AssignedPerson, Person, RawAssignment, ShiftGroup
from .utils import elapsed_ms

log = logging.getLogger(__name__)

UNASSIGNED = "Unassigned"

T = TypeVar("T")


def is_valid_assignment(record) -> bool:
    if not isinstance(record, RawAssignment):
        return False
    return bool(record.id and record.name and record.local_start_date and record.local_end_date)


def index_people(people: Iterable[Person]) -> dict[str, Person]:
    return {p.id: p for p in people if p.id}


def resolve_name(person_id: str, people_index: dict[str, Person]) -> str:
    """Display name for a person id.

    Precedence: screen name, then "first last", then whichever half exists,
    otherwise "Unassigned" (also used for empty or unknown ids).
    """
    if not person_id:
        return UNASSIGNED
    person = people_index.get(person_id)
    if person is None:
        return UNASSIGNED

    display = person.display_name.strip()
    if display:
        return display

    given = person.given_name.strip()
    family = person.family_name.strip()
    if given and family:
        return f"{given} {family}"
    return given or family or UNASSIGNED


def aggregate(records: list[RawAssignment], people: Iterable[Person] = ()) -> list[ShiftGroup]:
    """Group per-person records into ShiftGroups, first-seen key first."""
    if not records:
        return []

    started = time.perf_counter()
    people_index = index_people(people)
    groups: dict[str, ShiftGroup] = {}
    seen: dict[str, set] = {}

    for record in records:
        if not is_valid_assignment(record):
            log.debug("Skipping invalid assignment record id=%r", getattr(record, "id", None))
            continue

        key = record.grouping_key
        group = groups.get(key)
        if group is None:
            group = groups[key] = ShiftGroup.from_assignment(record)
            seen[key] = set()

        member = record.covering_member
        if not member:
            continue
        if member in seen[key]:
            # first-seen clock status wins for duplicate rows
            log.debug("Ignoring duplicate assignment of %s to %s", member, record.name)
            continue

        seen[key].add(member)
        group.assignments.append(AssignedPerson(
            person_id=member,
            name=resolve_name(member, people_index),
            clocked_in=record.clocked_in is True,
        ))

    grouped = list(groups.values())
    log.debug("Grouped %d records -> %d groups in %.2fms", len(records), len(grouped), elapsed_ms(started))
    return grouped


def count_clocked_in(groups: Iterable[ShiftGroup]) -> int:
    return sum(1 for g in groups for a in g.assignments if a.clocked_in)


def count_total_assigned(groups: Iterable[ShiftGroup]) -> int:
    # a person on two different shifts is counted twice
    return sum(len(g.assignments) for g in groups)


def filter_by_workgroup(items: list[T], workgroup_id: Optional[str]) -> list[T]:
    """Items whose workgroup matches; no workgroup means everything.

    Always returns a new list so callers can't mutate the source through it.
    """
    if not workgroup_id:
        return list(items)
    return [item for item in items if item.workgroup_id == workgroup_id]


def summarize(records: list[RawAssignment], groups: list[ShiftGroup]) -> dict:
    return {
        "original_shift_count": len(records),
        "grouped_shift_count": len(groups),
        "clocked_in_count": count_clocked_in(groups),
        "total_assigned_count": count_total_assigned(groups),
    }
