# whoson/services.py
import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from .domain import Person, ShiftGroup, Workgroup
from .shifts import aggregate, filter_by_workgroup, summarize
from .utils import elapsed_ms

log = logging.getLogger(__name__)

DEFAULT_BATCH = 100


@dataclass
class WhosOnResult:
    groups: list[ShiftGroup]
    people: list[Person]
    workgroups: list[Workgroup]
    metrics: dict
    page: dict = field(default_factory=dict)

    def to_dict(self):
        return {
            "shifts": [g.to_dict() for g in self.groups],
            "referenced_objects": {
                "account": [p.to_dict() for p in self.people],
                "workgroup": [w.to_dict() for w in self.workgroups],
            },
            "metrics": self.metrics,
            "page": self.page,
        }


class ShiftService:
    """Fetches from the upstream source and applies grouping."""

    def __init__(self, source):
        self.source = source

    def whos_on(self, workgroup_id: Optional[str] = None, batch_size: int = DEFAULT_BATCH) -> WhosOnResult:
        log.info("Fetching whos-on shifts (workgroup=%s)", workgroup_id or "all")

        started = time.perf_counter()
        fetched = self.source.fetch_assignments(workgroup_id=workgroup_id, batch_size=batch_size)
        fetch_ms = elapsed_ms(started)

        started = time.perf_counter()
        groups = aggregate(fetched.records, fetched.people)
        grouping_ms = elapsed_ms(started)

        metrics = summarize(fetched.records, groups)
        metrics["fetch_duration_ms"] = round(fetch_ms)
        metrics["grouping_duration_ms"] = round(grouping_ms)

        log.info(
            "Grouped %d -> %d shifts, %d clocked in",
            metrics["original_shift_count"], metrics["grouped_shift_count"], metrics["clocked_in_count"],
        )
        return WhosOnResult(
            groups=groups,
            people=fetched.people,
            workgroups=fetched.workgroups,
            metrics=metrics,
            page=fetched.page,
        )

    def list_shifts(self, workgroup_id: Optional[str] = None, batch_size: Optional[int] = None, start: int = 0):
        """Raw records, no grouping."""
        return self.source.fetch_assignments(workgroup_id=workgroup_id, batch_size=batch_size, start=start)

    def apply_workgroup_filter(self, items, workgroup_id: Optional[str]):
        return filter_by_workgroup(items, workgroup_id)
