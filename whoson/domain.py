# whoson/domain.py
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Optional

# Fields that identify "the same shift"; order matters for the grouping key.
KEY_FIELDS = ("name", "local_start_date", "local_end_date", "workgroup_id", "subject", "location")

_ASSIGNMENT_WIRE_FIELDS = {
    "id", "name", "subject", "location", "workgroup",
    "local_start_date", "local_end_date", "covering_member", "clocked_in", "members",
}


def _text(val) -> str:
    if val is None:
        return ""
    return str(val)


def coerce_clock_status(val) -> bool:
    """Clock status arrives as true, false or absent; only a real True counts."""
    return val is True


@dataclass(frozen=True)
class RawAssignment:
    """One person's assignment to one shift occurrence, as delivered upstream."""

    id: str
    name: str
    local_start_date: str
    local_end_date: str
    subject: str = ""
    location: str = ""
    workgroup_id: str = ""
    covering_member: str = ""
    clocked_in: Optional[bool] = None
    extra: dict = field(default_factory=dict, compare=False, repr=False)

    @property
    def grouping_key(self) -> str:
        return "|".join(getattr(self, f) for f in KEY_FIELDS)

    @classmethod
    def from_dict(cls, data) -> "RawAssignment":
        # Anything that isn't a mapping becomes a blank (invalid) record.
        if not isinstance(data, Mapping):
            return cls(id="", name="", local_start_date="", local_end_date="")

        member = data.get("covering_member")
        clocked_in = data.get("clocked_in")
        members = data.get("members")
        if not member and isinstance(members, list) and members and isinstance(members[0], Mapping):
            first = members[0]
            member = first.get("member") or first.get("account")
            if clocked_in is None:
                clocked_in = first.get("clocked_in")

        return cls(
            id=_text(data.get("id")),
            name=_text(data.get("name")),
            local_start_date=_text(data.get("local_start_date")),
            local_end_date=_text(data.get("local_end_date")),
            subject=_text(data.get("subject")),
            location=_text(data.get("location")),
            workgroup_id=_text(data.get("workgroup")),
            covering_member=_text(member),
            clocked_in=clocked_in if isinstance(clocked_in, bool) else None,
            extra={k: v for k, v in data.items() if k not in _ASSIGNMENT_WIRE_FIELDS},
        )

    def to_dict(self):
        out = dict(self.extra)
        out.update({
            "id": self.id,
            "name": self.name,
            "subject": self.subject,
            "location": self.location,
            "workgroup": self.workgroup_id,
            "local_start_date": self.local_start_date,
            "local_end_date": self.local_end_date,
            "covering_member": self.covering_member or None,
            "clocked_in": self.clocked_in,
        })
        return out


@dataclass(frozen=True)
class Person:
    id: str
    display_name: str = ""
    given_name: str = ""
    family_name: str = ""
    phone: str = ""

    @classmethod
    def from_dict(cls, data) -> "Person":
        if not isinstance(data, Mapping):
            return cls(id="")
        return cls(
            id=_text(data.get("id")),
            display_name=_text(data.get("screen_name")),
            given_name=_text(data.get("first_name")),
            family_name=_text(data.get("last_name")),
            phone=_text(data.get("mobile_phone")),
        )

    def to_dict(self):
        return {
            "id": self.id,
            "screen_name": self.display_name,
            "first_name": self.given_name,
            "last_name": self.family_name,
            "mobile_phone": self.phone,
        }


@dataclass(frozen=True)
class Workgroup:
    id: str
    name: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data) -> "Workgroup":
        if not isinstance(data, Mapping):
            return cls(id="")
        return cls(
            id=_text(data.get("id")),
            name=_text(data.get("name")),
            description=_text(data.get("description")),
        )

    def to_dict(self):
        return {"id": self.id, "name": self.name, "description": self.description}


@dataclass(frozen=True)
class AssignedPerson:
    person_id: str
    name: str
    clocked_in: bool = False


@dataclass
class ShiftGroup:
    """All assignments that share one grouping key.

    People live in a single list of AssignedPerson, so ids, names and clock
    statuses can never drift out of alignment. The parallel views below exist
    for the JSON contract consumed by the dashboard.
    """

    id: str
    name: str
    local_start_date: str
    local_end_date: str
    subject: str = ""
    location: str = ""
    workgroup_id: str = ""
    assignments: list[AssignedPerson] = field(default_factory=list)

    @classmethod
    def from_assignment(cls, record: RawAssignment) -> "ShiftGroup":
        return cls(
            id=record.id,
            name=record.name,
            local_start_date=record.local_start_date,
            local_end_date=record.local_end_date,
            subject=record.subject,
            location=record.location,
            workgroup_id=record.workgroup_id,
        )

    @property
    def grouping_key(self) -> str:
        return "|".join(getattr(self, f) for f in KEY_FIELDS)

    @property
    def assigned_person_ids(self) -> list[str]:
        return [a.person_id for a in self.assignments]

    @property
    def assigned_person_names(self) -> list[str]:
        return [a.name for a in self.assignments]

    @property
    def clock_statuses(self) -> list[bool]:
        return [a.clocked_in for a in self.assignments]

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "subject": self.subject,
            "location": self.location,
            "workgroup": self.workgroup_id,
            "local_start_date": self.local_start_date,
            "local_end_date": self.local_end_date,
            "assigned_people": self.assigned_person_ids,
            "assigned_person_names": self.assigned_person_names,
            "clock_statuses": self.clock_statuses,
        }


@dataclass
class FetchResult:
    """One batch as returned by an upstream source."""

    records: list[RawAssignment] = field(default_factory=list)
    people: list[Person] = field(default_factory=list)
    workgroups: list[Workgroup] = field(default_factory=list)
    page: dict = field(default_factory=dict)

    @classmethod
    def from_payload(cls, body, batch_size=None) -> "FetchResult":
        """Parse a whos-on style body: shifts plus referenced account/workgroup objects."""
        shifts = body.get("shifts") or []
        refs = body.get("referenced_objects") or {}
        records = [RawAssignment.from_dict(s) for s in shifts]
        page = body.get("page") or {}
        return cls(
            records=records,
            people=[Person.from_dict(a) for a in refs.get("account") or []],
            workgroups=[Workgroup.from_dict(w) for w in refs.get("workgroup") or []],
            page={
                "start": page.get("start") or 0,
                "batch": page.get("batch") or batch_size or len(records),
                "total": page.get("total") or len(records),
                "next": page.get("next"),
            },
        )
