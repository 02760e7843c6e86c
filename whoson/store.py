# whoson/store.py
"""Local cache of the last successful sync.

Three keyed tables (assignments, people, workgroups) plus a single
``lastSync`` timestamp. Every SQLAlchemy failure surfaces as
StorageUnavailable so the sync policy can fall back instead of crashing.
"""
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .domain import Person, RawAssignment, Workgroup
from .errors import StorageUnavailable
from .models import LAST_SYNC_KEY, Assignment, PersonRow, SyncMetadata, WorkgroupRow, init_db
from .utils import as_utc

log = logging.getLogger(__name__)


def _assignment_row(record: RawAssignment, seq: int) -> Assignment:
    return Assignment(
        id=record.id,
        workgroup_id=record.workgroup_id,
        name=record.name,
        subject=record.subject,
        location=record.location,
        local_start_date=record.local_start_date,
        local_end_date=record.local_end_date,
        covering_member=record.covering_member or None,
        clocked_in=record.clocked_in,
        seq=seq,
        payload=record.to_dict(),
    )


def _assignment_from_row(row: Assignment) -> RawAssignment:
    return RawAssignment.from_dict(row.payload)


class LocalStore:
    def __init__(self, engine, create=True):
        self.engine = engine
        self.Session = sessionmaker(bind=engine, expire_on_commit=False, future=True)
        if create:
            try:
                init_db(engine)
            except SQLAlchemyError as exc:
                # reads/writes will raise StorageUnavailable later
                log.warning("Local store could not be initialized: %s", exc)

    @contextmanager
    def session(self, write=False):
        s = self.Session()
        try:
            yield s
            if write:
                s.commit()
        except SQLAlchemyError as exc:
            s.rollback()
            raise StorageUnavailable(f"Local store unavailable: {exc}") from exc
        finally:
            s.close()

    # -- writes ---------------------------------------------------------

    def _put_assignments(self, s, records):
        # Valid ids only; a record without a primary key can't be cached.
        next_seq = (s.execute(select(func.max(Assignment.seq))).scalar() or 0) + 1
        for i, record in enumerate(r for r in records if r.id):
            s.merge(_assignment_row(record, next_seq + i))

    def _put_people(self, s, people):
        for p in people:
            if not p.id:
                continue
            s.merge(PersonRow(
                id=p.id, display_name=p.display_name, given_name=p.given_name,
                family_name=p.family_name, phone=p.phone,
            ))

    def _put_workgroups(self, s, workgroups):
        for wg in workgroups:
            if not wg.id:
                continue
            s.merge(WorkgroupRow(id=wg.id, name=wg.name, description=wg.description))

    def put_assignments(self, records: list[RawAssignment]):
        with self.session(write=True) as s:
            self._put_assignments(s, records)

    def replace_assignments(self, records: list[RawAssignment]):
        """Swap the whole assignment table for a new snapshot in one transaction."""
        with self.session(write=True) as s:
            s.execute(delete(Assignment))
            self._put_assignments(s, records)

    def put_people(self, people: list[Person]):
        with self.session(write=True) as s:
            self._put_people(s, people)

    def put_workgroups(self, workgroups: list[Workgroup]):
        with self.session(write=True) as s:
            self._put_workgroups(s, workgroups)

    def record_sync_success(self, timestamp: datetime):
        with self.session(write=True) as s:
            s.merge(SyncMetadata(key=LAST_SYNC_KEY, value=as_utc(timestamp)))

    def save_snapshot(self, records: list[RawAssignment], people: list[Person],
                      workgroups: list[Workgroup], synced_at: datetime):
        """Store a whole sync result and advance the marker; all or nothing."""
        with self.session(write=True) as s:
            s.execute(delete(Assignment))
            self._put_assignments(s, records)
            self._put_people(s, people)
            self._put_workgroups(s, workgroups)
            s.merge(SyncMetadata(key=LAST_SYNC_KEY, value=as_utc(synced_at)))

    # -- reads ----------------------------------------------------------

    def get_assignments_by_workgroup(self, workgroup_id: Optional[str] = None) -> list[RawAssignment]:
        stmt = select(Assignment)
        if workgroup_id:
            # served by the workgroup_id index
            stmt = stmt.where(Assignment.workgroup_id == workgroup_id)
        stmt = stmt.order_by(Assignment.seq, Assignment.id)
        with self.session() as s:
            return [_assignment_from_row(row) for row in s.execute(stmt).scalars()]

    def get_all_people(self) -> list[Person]:
        with self.session() as s:
            rows = s.execute(select(PersonRow).order_by(PersonRow.id)).scalars()
            return [
                Person(id=r.id, display_name=r.display_name or "", given_name=r.given_name or "",
                       family_name=r.family_name or "", phone=r.phone or "")
                for r in rows
            ]

    def get_all_workgroups(self) -> list[Workgroup]:
        with self.session() as s:
            rows = s.execute(select(WorkgroupRow).order_by(WorkgroupRow.id)).scalars()
            return [Workgroup(id=r.id, name=r.name or "", description=r.description or "") for r in rows]

    def get_last_sync_timestamp(self) -> Optional[datetime]:
        with self.session() as s:
            row = s.get(SyncMetadata, LAST_SYNC_KEY)
            return as_utc(row.value) if row else None
