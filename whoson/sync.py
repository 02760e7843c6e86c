# whoson/sync.py
"""Cache-or-fetch policy for the dashboard.

A fresh cache is served without touching the network. A stale, missing or
forced cache always tries the remote source, and if that fails we serve
whatever is cached (possibly nothing) with a warning instead of an error.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from .errors import RemoteFetchFailed, StorageUnavailable
from .shifts import aggregate, filter_by_workgroup
from .sources import fetch_all_pages
from .utils import utc_now

log = logging.getLogger(__name__)

DEFAULT_FRESHNESS = timedelta(seconds=60)


class SyncState(Enum):
    FRESH = "fresh"
    STALE = "stale"
    FORCED = "forced"


@dataclass
class SyncResult:
    data: list
    is_fresh_data: bool
    last_sync_timestamp: Optional[datetime]
    state: SyncState
    warnings: list[str] = field(default_factory=list)

    def to_dict(self):
        return {
            "data": [item.to_dict() for item in self.data],
            "is_fresh_data": self.is_fresh_data,
            "last_sync_timestamp": self.last_sync_timestamp.isoformat() if self.last_sync_timestamp else None,
            "state": self.state.value,
            "warnings": list(self.warnings),
        }


class SyncPolicy:
    def __init__(self, store, source, freshness_threshold: timedelta = DEFAULT_FRESHNESS, clock=utc_now):
        self.store = store
        self.source = source
        self.freshness_threshold = freshness_threshold
        self.clock = clock

    def evaluate(self, force_sync: bool, last_sync: Optional[datetime], now: datetime) -> SyncState:
        if force_sync:
            return SyncState.FORCED
        if last_sync is None:
            return SyncState.STALE
        if now - last_sync >= self.freshness_threshold:
            return SyncState.STALE
        return SyncState.FRESH

    def _last_sync(self):
        try:
            return self.store.get_last_sync_timestamp()
        except StorageUnavailable as exc:
            log.warning("Cannot read sync marker, treating cache as absent: %s", exc)
            return None

    def _shape(self, records, people, workgroup_id, grouped):
        records = filter_by_workgroup(records, workgroup_id)
        return aggregate(records, people) if grouped else records

    def _read_cache(self, workgroup_id, grouped):
        """Cached data for the workgroup, or None when the store can't be read."""
        try:
            records = self.store.get_assignments_by_workgroup(workgroup_id)
            people = self.store.get_all_people() if grouped else []
        except StorageUnavailable as exc:
            log.warning("Cache read failed: %s", exc)
            return None
        return self._shape(records, people, None, grouped)

    def sync(self, workgroup_id: Optional[str] = None, force_sync: bool = False, grouped: bool = True) -> SyncResult:
        now = self.clock()
        last_sync = self._last_sync()
        state = self.evaluate(force_sync, last_sync, now)
        warnings: list[str] = []

        if state is SyncState.FRESH:
            data = self._read_cache(workgroup_id, grouped)
            if data is not None:
                return SyncResult(data, False, last_sync, state, warnings)
            # unreadable cache counts as no cache
            state = SyncState.STALE

        log.info("Cache %s, fetching from remote source", state.value)
        try:
            # always the full set; workgroup filtering happens locally
            fetched = fetch_all_pages(self.source)
        except RemoteFetchFailed as exc:
            log.warning("Remote fetch failed, serving cached data: %s", exc)
            warnings.append(f"Remote fetch failed: {exc}")
            data = self._read_cache(workgroup_id, grouped)
            if data is None:
                warnings.append("Cached data unavailable")
                data = []
            return SyncResult(data, False, last_sync, state, warnings)

        try:
            self.store.save_snapshot(fetched.records, fetched.people, fetched.workgroups, now)
            last_sync = now
        except StorageUnavailable as exc:
            log.warning("Fetched data could not be cached: %s", exc)
            warnings.append(f"Cache write failed: {exc}")

        data = self._shape(fetched.records, fetched.people, workgroup_id, grouped)
        return SyncResult(data, True, last_sync, state, warnings)
