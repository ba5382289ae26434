"""Wall-clock helpers shared by the ingestion pipeline and the scheduler.

Every datetime stored on a process or alert is naive local time in
``settings.TIMEZONE``; ``local_now`` is the one place that reads the clock.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from .config import settings


def local_now() -> datetime:
    return datetime.now(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)


def to_local(value: datetime) -> datetime:
    """Aware datetimes become naive local time; naive ones are kept as-is."""
    if value.tzinfo is None:
        return value
    return value.astimezone(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)


def is_business_day(day: date) -> bool:
    return day.weekday() < 5


def add_business_days(start: datetime, business_days: int) -> datetime:
    """Advance ``start`` by ``business_days`` weekdays, skipping Sat/Sun."""
    current = start
    added = 0
    while added < business_days:
        current += timedelta(days=1)
        if is_business_day(current):
            added += 1
    return current


def business_days_between(start: date, end: date) -> int:
    """Count weekdays in the inclusive range ``[start, end]``."""
    count = 0
    current = start
    while current <= end:
        if is_business_day(current):
            count += 1
        current += timedelta(days=1)
    return count


def appeal_deadline(sentence_date: datetime) -> datetime:
    return add_business_days(sentence_date, settings.APPEAL_BUSINESS_DAYS)


def embargo_deadline(sentence_date: datetime) -> datetime:
    return add_business_days(sentence_date, settings.EMBARGO_BUSINESS_DAYS)


def format_date(value: datetime | date | None) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")


def format_datetime(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y %H:%M")
