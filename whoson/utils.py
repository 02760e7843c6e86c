# whoson/utils.py
import pathlib
import time
from datetime import datetime

import pytz

from .errors import ConfigurationError

TRUE_VALUES = {"1", "true", "yes", "on"}


def load_version():
    try:
        return pathlib.Path(__file__).resolve().parents[1].joinpath("VERSION").read_text().strip()
    except OSError:
        return "0.0.0"


def get_timezone(tzname: str):
    try:
        return pytz.timezone(tzname)
    except pytz.UnknownTimeZoneError as exc:
        raise ConfigurationError(f"Unknown timezone: {tzname}") from exc


def tz_now(tzname: str):
    return datetime.now(get_timezone(tzname))


def utc_now():
    return datetime.now(pytz.utc)


def as_utc(value: datetime | None):
    """SQLite drops tzinfo on the way back out; naive values are UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value.astimezone(pytz.utc)


def parse_bool(val, default=False) -> bool:
    if val is None or val == "":
        return default
    if isinstance(val, bool):
        return val
    return str(val).strip().lower() in TRUE_VALUES


def parse_int(val, name: str, default=None):
    if val is None or val == "":
        return default
    try:
        return int(str(val).strip())
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {val!r}") from exc


def elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000.0


def timing_metadata(started_at: datetime, tzname: str = "UTC"):
    ended_at = tz_now(tzname)
    return {
        "start": started_at.isoformat(),
        "end": ended_at.isoformat(),
        "duration_ms": int((ended_at - started_at).total_seconds() * 1000),
    }
