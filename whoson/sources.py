# whoson/sources.py
"""Upstream shift sources.

Every source exposes ``fetch_assignments(workgroup_id=None, batch_size=None,
start=0) -> FetchResult`` and raises RemoteFetchFailed when it can't deliver.
"""
import logging
import random
from collections.abc import Mapping
from datetime import datetime, time, timedelta

import httpx

from .domain import FetchResult, Person, RawAssignment, Workgroup
from .errors import ConfigurationError, RemoteFetchFailed
from .shifts import filter_by_workgroup
from .utils import utc_now

log = logging.getLogger(__name__)


class HttpShiftSource:
    """Reads a whos-on style JSON feed over HTTP."""

    def __init__(self, url: str, timeout: float = 30.0, client: httpx.Client | None = None):
        if not url:
            raise ConfigurationError("A feed URL is required")
        self.url = url
        self.client = client or httpx.Client(
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

    def fetch_assignments(self, workgroup_id=None, batch_size=None, start=0) -> FetchResult:
        params = {}
        if workgroup_id:
            params["workgroup"] = workgroup_id
        if batch_size:
            params["batch"] = batch_size
        if start:
            params["start"] = start

        log.info("Fetching shifts from %s %s", self.url, params)
        try:
            resp = self.client.get(self.url, params=params)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as exc:
            raise RemoteFetchFailed(
                f"HTTP error: {exc.response.status_code} {exc.response.reason_phrase}"
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteFetchFailed(f"Network error: {exc}") from exc
        except ValueError as exc:
            raise RemoteFetchFailed("Response was not valid JSON") from exc

        if not isinstance(body, Mapping):
            raise RemoteFetchFailed("Response body was not an object")
        if body.get("error"):
            err = body["error"]
            if isinstance(err, Mapping):
                err = err.get("message") or err.get("error") or err.get("code")
            raise RemoteFetchFailed(f"API error: {err}")

        result = body.get("result", body)
        if not isinstance(result, Mapping) or not isinstance(result.get("shifts", []), list):
            raise RemoteFetchFailed("Response is missing a shifts list")
        refs = result.get("referenced_objects") or {}
        if not isinstance(refs, Mapping):
            raise RemoteFetchFailed("referenced_objects must be an object")
        for kind in ("account", "workgroup"):
            if not isinstance(refs.get(kind) or [], list):
                raise RemoteFetchFailed(f"referenced_objects.{kind} must be a list")
        if not isinstance(result.get("page") or {}, Mapping):
            raise RemoteFetchFailed("page must be an object")

        try:
            return FetchResult.from_payload(result, batch_size=batch_size)
        except (AttributeError, TypeError, ValueError) as exc:
            raise RemoteFetchFailed(f"Malformed response: {exc}") from exc

    def close(self):
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


FIRST_NAMES = [
    "Alice", "Bob", "Carol", "David", "Emma", "Frank", "Grace", "Henry", "Iris", "Jack",
    "Kate", "Liam", "Maya", "Noah", "Olivia", "Paul", "Quinn", "Rachel", "Sam", "Tara",
    "Uma", "Victor", "Wendy", "Xavier", "Yara", "Zack", "Ava", "Ben", "Chloe", "Dan",
    "Ella", "Finn", "Gina", "Hank", "Isla", "Jake", "Luna", "Max", "Nina", "Owen",
]
LAST_NAMES = [
    "Anderson", "Baker", "Chen", "Davis", "Evans", "Foster", "Garcia", "Harris", "Ivanov", "Jones",
    "Kim", "Lopez", "Martinez", "Nelson", "O'Brien", "Patel", "Quinn", "Rodriguez", "Smith", "Taylor",
    "Underwood", "Vasquez", "Williams", "Xu", "Young", "Zhang", "Allen", "Brown", "Clark", "Diaz",
    "Edwards", "Fisher", "Green", "Hill", "Jackson", "King", "Lee", "Miller", "Nguyen", "Ortiz",
]

MOCK_PEOPLE = [
    Person(
        id=f"acc-{i + 1:03d}",
        display_name=f"{first} {last[0]}.",
        given_name=first,
        family_name=last,
        phone=f"+1-555-{i + 1:04d}",
    )
    for i, (first, last) in enumerate(zip(FIRST_NAMES, LAST_NAMES))
]

MOCK_WORKGROUPS = [
    Workgroup("wg-001", "Security Team", "Site security and access control"),
    Workgroup("wg-002", "Medical Staff", "First aid and medical response"),
    Workgroup("wg-003", "Operations", "General operations and logistics"),
    Workgroup("wg-004", "Guest Services", "Guest relations and information"),
]

# name, subject, location, workgroup, start hour, end hour
SHIFT_TEMPLATES = [
    ("Security - Main Entrance", "Access Control & Monitoring", "Main Gate", "wg-001", 6, 18),
    ("Operations - Equipment Management", "Equipment Setup & Maintenance", "Operations Center", "wg-003", 7, 19),
    ("Guest Services - Information Desk", "Guest Assistance & Information", "Main Hall", "wg-004", 8, 20),
]
OPTIONAL_TEMPLATE = ("Medical - First Aid Station", "Medical Response & First Aid", "Medical Tent A", "wg-002", 8, 20)


class MockShiftSource:
    """Development data: 3-4 all-day shifts with 6-10 people each, ~70% clocked in."""

    def __init__(self, seed=None, now: datetime | None = None):
        self.rng = random.Random(seed)
        self.now = now

    def _generate(self) -> list[RawAssignment]:
        today = (self.now or utc_now()).date()

        def at(hour):
            return datetime.combine(today, time(hour)).isoformat()

        templates = list(SHIFT_TEMPLATES)
        if self.rng.random() > 0.25:
            templates.append(OPTIONAL_TEMPLATE)

        available = [p.id for p in MOCK_PEOPLE]
        self.rng.shuffle(available)

        records = []
        for t_idx, (name, subject, location, wg, start_h, end_h) in enumerate(templates, start=1):
            count = self.rng.randint(6, 10)
            people, available = available[:count], available[count:]
            for p_idx, person_id in enumerate(people, start=1):
                clocked_in = self.rng.random() > 0.3
                extra = {}
                if clocked_in:
                    early = timedelta(minutes=self.rng.randint(0, 9))
                    extra["clock_in_time"] = (datetime.combine(today, time(start_h)) - early).isoformat()
                records.append(RawAssignment(
                    id=f"shift-{t_idx}-{p_idx}",
                    name=name,
                    subject=subject,
                    location=location,
                    workgroup_id=wg,
                    local_start_date=at(start_h),
                    local_end_date=at(end_h),
                    covering_member=person_id,
                    clocked_in=clocked_in,
                    extra=extra,
                ))
        return records

    def fetch_assignments(self, workgroup_id=None, batch_size=None, start=0) -> FetchResult:
        records = filter_by_workgroup(self._generate(), workgroup_id)
        total = len(records)
        batch = batch_size or total
        page = records[start:start + batch]
        nxt = start + batch if start + batch < total else None
        return FetchResult(
            records=page,
            people=list(MOCK_PEOPLE),
            workgroups=list(MOCK_WORKGROUPS),
            page={"start": start, "batch": batch, "total": total, "next": nxt},
        )


def build_source(config):
    """Pick the upstream source named by the app config."""
    if config.get("ENABLE_MOCK_DATA"):
        log.info("Using mock shift data")
        return MockShiftSource(seed=config.get("MOCK_DATA_SEED"))
    if config.get("SHIFT_FEED_URL"):
        return HttpShiftSource(config["SHIFT_FEED_URL"], timeout=config.get("SHIFT_FEED_TIMEOUT", 30))
    raise ConfigurationError("No shift source configured: set SHIFT_FEED_URL or ENABLE_MOCK_DATA=true")


MAX_PAGES = 100


def fetch_all_pages(source, max_pages=MAX_PAGES) -> FetchResult:
    """Follow ``page.next`` until the source runs out, merging every page."""
    records = []
    people = {}
    workgroups = {}
    start = 0
    pages = 0
    nxt = None

    while pages < max_pages:
        fetched = source.fetch_assignments(start=start)
        pages += 1
        records.extend(fetched.records)
        people.update((p.id, p) for p in fetched.people)
        workgroups.update((w.id, w) for w in fetched.workgroups)

        nxt = fetched.page.get("next")
        if not isinstance(nxt, int) or isinstance(nxt, bool) or nxt <= start:
            nxt = None
            break
        start = nxt

    if nxt is not None:
        log.warning("Pagination stopped at %d pages. Some shifts may not be fetched.", max_pages)

    return FetchResult(
        records=records,
        people=list(people.values()),
        workgroups=list(workgroups.values()),
        page={"start": 0, "batch": len(records), "total": len(records), "next": nxt},
    )
