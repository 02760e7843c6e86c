# whoson/models.py
from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, create_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

Base = declarative_base()

LAST_SYNC_KEY = "lastSync"


class Assignment(Base):
    __tablename__ = "assignments"
    id = Column(String, primary_key=True)
    workgroup_id = Column(String, nullable=False, default="", index=True)
    name = Column(String, nullable=False)
    subject = Column(String, default="")
    location = Column(String, default="")
    local_start_date = Column(String, nullable=False, index=True)
    local_end_date = Column(String, nullable=False)
    covering_member = Column(String, nullable=True)
    clocked_in = Column(Boolean, nullable=True)     # null and false both mean "not clocked in"
    seq = Column(Integer, nullable=False, default=0)  # upstream order
    payload = Column(JSON, nullable=False, default=dict)


class PersonRow(Base):
    __tablename__ = "people"
    id = Column(String, primary_key=True)
    display_name = Column(String, default="")
    given_name = Column(String, default="")
    family_name = Column(String, default="")
    phone = Column(String, default="")


class WorkgroupRow(Base):
    __tablename__ = "workgroups"
    id = Column(String, primary_key=True)
    name = Column(String, default="")
    description = Column(String, default="")


class SyncMetadata(Base):
    __tablename__ = "sync_metadata"
    key = Column(String, primary_key=True)
    value = Column(DateTime(timezone=True), nullable=False)


def get_engine(db_url: str):
    if db_url in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every session sees an empty db
        return create_engine(
            "sqlite://",
            echo=False, future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if db_url.startswith("sqlite:///"):
        path = db_url.replace("sqlite:///", "")
        return create_engine(
            f"sqlite:///{path}",
            echo=False, future=True,
            connect_args={"check_same_thread": False}
        )
    return create_engine(db_url, echo=False, future=True)


def init_db(engine):
    Base.metadata.create_all(engine)
