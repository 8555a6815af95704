from __future__ import annotations
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import current_app


def campus_tz():
    name = current_app.config.get("CAMPUS_TZ", "UTC")
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        try:
            import tzdata  # noqa
            return ZoneInfo(name)
        except Exception:
            return timezone.utc


def campus_now() -> datetime:
    return datetime.now(campus_tz())


def campus_today() -> date:
    return campus_now().date()


def day_index(d: date) -> int:
    """Номер дня недели в расписании: 0=Вс, 1=Пн .. 6=Сб."""
    return (d.weekday() + 1) % 7
