from datetime import datetime

import pytest
import pytz

from whoson import create_app
from whoson.domain import FetchResult, Person, RawAssignment, Workgroup
from whoson.errors import RemoteFetchFailed
from whoson.models import get_engine
from whoson.store import LocalStore

NOW = datetime(2024, 1, 15, 12, 0, tzinfo=pytz.utc)


def make_record(id, member="", clocked_in=None, **kw):
    fields = dict(
        name="Security",
        local_start_date="2024-01-15T08:00:00",
        local_end_date="2024-01-15T16:00:00",
        workgroup_id="wg-001",
        subject="Access Control",
        location="Main Gate",
    )
    fields.update(kw)
    return RawAssignment(id=id, covering_member=member, clocked_in=clocked_in, **fields)


class StubSource:
    """Upstream stand-in that counts calls and can be told to fail."""

    def __init__(self, records=(), people=(), workgroups=(), fail=False):
        self.result = FetchResult(list(records), list(people), list(workgroups),
                                  page={"start": 0, "batch": 100, "total": len(records), "next": None})
        self.fail = fail
        self.calls = []

    def fetch_assignments(self, workgroup_id=None, batch_size=None, start=0):
        self.calls.append((workgroup_id, batch_size, start))
        if self.fail:
            raise RemoteFetchFailed("connection refused")
        return self.result


class FixedClock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def people():
    return [
        Person(id="p1", display_name="Alice A.", given_name="Alice", family_name="Anderson"),
        Person(id="p2", given_name="Bob", family_name="Baker"),
        Person(id="p3", given_name="Carol"),
    ]


@pytest.fixture
def workgroups():
    return [Workgroup("wg-001", "Security Team"), Workgroup("wg-002", "Medical Staff")]


@pytest.fixture
def store():
    return LocalStore(get_engine("sqlite://"))


@pytest.fixture
def broken_store(tmp_path):
    # parent directory doesn't exist, so every connection attempt fails
    return LocalStore(get_engine(f"sqlite:///{tmp_path}/missing/dir/cache.db"))


@pytest.fixture
def source(people, workgroups):
    return StubSource(
        records=[
            make_record("s1", "p1", True),
            make_record("s2", "p2", False),
            make_record("s3", "p3", None, name="Medical", workgroup_id="wg-002"),
        ],
        people=people,
        workgroups=workgroups,
    )


@pytest.fixture
def app(source):
    return create_app(
        config={
            "DATABASE_URL": "sqlite://", "TIMEZONE": "UTC",
            "ENABLE_MOCK_DATA": False, "SHIFT_FEED_URL": "", "WHOSON_API_URL": "",
        },
        source=source,
    )


@pytest.fixture
def client(app):
    return app.test_client()
