from __future__ import annotations
from datetime import date, datetime, time

WEEKDAYS = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

def _as_time(value: time | str | None) -> time | None:
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value
    parts = str(value).split(":")
    return time(int(parts[0]), int(parts[1]) if len(parts) > 1 else 0)

def fmt_time(value: time | str | None) -> str:
    """14:00 -> 02:00 PM"""
    t = _as_time(value)
    if t is None:
        return ""
    period = "PM" if t.hour >= 12 else "AM"
    hour = t.hour % 12 or 12
    return f"{hour:02d}:{t.minute:02d} {period}"

def fmt_date(value: date | str | None) -> str:
    if not value:
        return ""
    if isinstance(value, str):
        value = date.fromisoformat(value[:10])
    return f"{value.strftime('%A, %B')} {value.day}, {value.year}"

def weekday_name(value: date | int | None) -> str:
    if value is None:
        return ""
    if isinstance(value, int):
        idx = value
    else:
        idx = (value.weekday() + 1) % 7
    return WEEKDAYS[idx % 7]

def greeting(now: datetime | None = None) -> str:
    hour = (now or datetime.now()).hour
    if hour < 12:
        return "Good Morning"
    if hour < 18:
        return "Good Afternoon"
    return "Good Evening"

def initials(name: str | None) -> str:
    if not name:
        return ""
    return "".join(p[0] for p in name.split() if p).upper()

def register_filters(app):
    app.add_template_filter(fmt_time, "fmt_time")
    app.add_template_filter(fmt_date, "fmt_date")
    app.add_template_filter(weekday_name, "weekday_name")
    app.add_template_filter(initials, "initials")
    app.add_template_global(greeting, "greeting")
    app.add_template_global(WEEKDAYS, "WEEKDAYS")
