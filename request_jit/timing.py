import re
from datetime import datetime, timedelta, timezone

from dateutil.parser import isoparse


def duration_hours(value):
    """Hours in a free-text duration such as ``PT5H``; 0 if none can be read."""
    digits = re.sub(r"\D", "", value or "")
    try:
        return int(digits)
    except ValueError:
        return 0


def iso_duration(hours):
    return "PT{}H".format(hours)


def _utcnow(now=None):
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def expiry_time(hours, now=None):
    return (_utcnow(now) + timedelta(hours=hours)).isoformat()


def describe_expiry(end_time_utc, now=None):
    end = isoparse(end_time_utc)
    if end.tzinfo is None:
        end = end.replace(tzinfo=timezone.utc)
    remaining = end - _utcnow(now)
    if remaining < timedelta(0):
        remaining = timedelta(0)
    remaining = timedelta(seconds=int(remaining.total_seconds()))
    return "until {} UTC (in {})".format(end.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"), remaining)
