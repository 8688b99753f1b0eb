# File: dispatchwatch/core/database/base.py

from datetime import datetime, timezone
from sqlalchemy.orm import declarative_base

# The shared registry. All feature models (AudioSegment, Call, HospitalCall, Incident) inherit from this.
Base = declarative_base()


def utc_now():
    return datetime.now(timezone.utc)


def as_utc(value):
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
