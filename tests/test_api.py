from __future__ import annotations
from datetime import date, datetime, time

import pytest
from sqlalchemy import func, select

import blueprints.classes.routes as classes_routes
from app import create_app
from extensions import db
from models import Attendance, Class, Counselor, Event, EventRegistration, EventTag, Resource, Schedule

@pytest.fixture()
def client_app():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()

@pytest.fixture()
def client(client_app):
    return client_app.test_client()

@pytest.fixture()
def user(client):
    r = client.post("/api/register", json={
        "username": "pulkit", "password": "password123",
        "fullName": "Pulkit Sharma", "email": "pulkit@campus.edu",
    })
    assert r.status_code == 201
    return r.get_json()

@pytest.fixture()
def timetable(client_app):
    ds = Class(name="Data Structures", professor="Dr. R", location="CS-204", color="#7C4DFF")
    la = Class(name="Linear Algebra", professor="Prof. M", location="Math-101", color="#00BFA5")
    db.session.add_all([ds, la])
    db.session.flush()
    mon_late = Schedule(class_id=la.id, day_of_week=1, start_time=time(11, 0), end_time=time(12, 0))
    mon_early = Schedule(class_id=ds.id, day_of_week=1, start_time=time(9, 0), end_time=time(10, 30))
    wed = Schedule(class_id=ds.id, day_of_week=3, start_time=time(9, 0), end_time=time(10, 30))
    db.session.add_all([mon_late, mon_early, wed])
    db.session.commit()
    return {"ds": ds.id, "la": la.id, "mon_early": mon_early.id, "mon_late": mon_late.id, "wed": wed.id}

# ---------- classes ----------
@pytest.mark.parametrize("path", [
    "/api/classes/today", "/api/classes/day?day=1", "/api/attendance/summary", "/api/attendance",
    "/api/chat/messages",
])
def test_guarded_reads_require_session(client, path):
    r = client.get(path)
    assert r.status_code == 401
    assert r.get_json() == {"message": "Authentication required"}

@pytest.mark.parametrize("path", [
    "/api/attendance", "/api/events/1/register", "/api/counseling/appointments", "/api/chat/messages",
])
def test_guarded_writes_require_session(client, path):
    assert client.post(path, json={}).status_code == 401

def test_public_classes_and_schedules(client, timetable):
    classes = client.get("/api/classes").get_json()
    assert [c["name"] for c in classes] == ["Data Structures", "Linear Algebra"]
    schedules = client.get("/api/schedules").get_json()
    assert {s["dayOfWeek"] for s in schedules} == {1, 3}
    assert {"classId", "startTime", "endTime"} <= set(schedules[0])

def test_classes_for_day(client, user, timetable):
    items = client.get("/api/classes/day?day=1").get_json()
    assert [c["name"] for c in items] == ["Data Structures", "Linear Algebra"]
    assert items[0]["schedule"]["id"] == timetable["mon_early"]
    assert items[0]["schedule"]["startTime"] == "09:00:00"

@pytest.mark.parametrize("day", ["7", "-1", "abc", "", "%C2%B2", "1.5"])
def test_classes_for_day_rejects_bad_day(client, user, day):
    r = client.get(f"/api/classes/day?day={day}")
    assert r.status_code == 400
    assert r.get_json()["errors"][0]["field"] == "day"

def test_classes_today_uses_campus_weekday(client, user, timetable, monkeypatch):
    monkeypatch.setattr(classes_routes, "campus_today", lambda: date(2025, 1, 8))  # среда
    items = client.get("/api/classes/today").get_json()
    assert [(c["name"], c["schedule"]["id"]) for c in items] == [("Data Structures", timetable["wed"])]

    monkeypatch.setattr(classes_routes, "campus_today", lambda: date(2025, 1, 5))  # воскресенье
    assert client.get("/api/classes/today").get_json() == []

# ---------- attendance ----------
def _mark(client, tt, status, day="2025-01-06", **extra):
    body = {"classId": tt["ds"], "scheduleId": tt["mon_early"], "date": day, "status": status}
    body.update(extra)
    return client.post("/api/attendance", json=body)

def test_mark_attendance_upserts(client, user, timetable):
    r1 = _mark(client, timetable, "present")
    assert r1.status_code == 201
    r2 = _mark(client, timetable, "absent")
    assert r2.status_code == 201
    assert r1.get_json()["id"] == r2.get_json()["id"]
    assert r2.get_json()["status"] == "absent"

    marks = client.get("/api/attendance?date=2025-01-06").get_json()
    assert len(marks) == 1 and marks[0]["status"] == "absent"

def test_mark_attendance_ignores_client_user_id(client, user, timetable):
    r = _mark(client, timetable, "present", userId=999)
    assert r.get_json()["userId"] == user["id"]

def test_mark_attendance_validation(client, user, timetable):
    r = _mark(client, timetable, "late")
    assert r.status_code == 400
    assert [e["field"] for e in r.get_json()["errors"]] == ["status"]

def test_attendance_bad_date_param(client, user):
    r = client.get("/api/attendance?date=06-01-2025")
    assert r.status_code == 400

def test_attendance_summary(client, user, timetable):
    assert client.get("/api/attendance/summary").get_json() == {
        "overall": 0, "present": 0, "absent": 0, "total": 0,
    }
    _mark(client, timetable, "present", day="2025-01-06")
    _mark(client, timetable, "absent", day="2025-01-13")
    s = client.get("/api/attendance/summary").get_json()
    assert s == {"overall": 50.0, "present": 50.0, "absent": 50.0, "total": 2}

# ---------- resources ----------
@pytest.fixture()
def resources(client_app):
    db.session.add_all([
        Resource(title="Data Mining Notes", type="pdf", url="https://r/1", category="Data Science",
                 added_at=datetime(2025, 1, 1)),
        Resource(title="Essay Writing", type="article", url="https://r/2", category="Writing",
                 added_at=datetime(2025, 1, 2)),
    ])
    db.session.commit()

def test_resources_public_with_filters(client, resources):
    assert len(client.get("/api/resources").get_json()) == 2
    assert len(client.get("/api/resources?category=&search=").get_json()) == 2
    only = client.get("/api/resources?category=Writing").get_json()
    assert [r["title"] for r in only] == ["Essay Writing"]
    found = client.get("/api/resources?search=mining").get_json()
    assert [r["title"] for r in found] == ["Data Mining Notes"]
    assert {"fileSize", "addedAt"} <= set(found[0])

def test_resource_categories(client, resources):
    assert client.get("/api/resources/categories").get_json() == ["Data Science", "Writing"]

# ---------- events ----------
@pytest.fixture()
def event(client_app):
    ev = Event(title="Tech Fest", date=date(2025, 3, 10), start_time=time(10, 0), location="Hall",
               is_featured=True)
    db.session.add(ev)
    db.session.flush()
    db.session.add(EventTag(event_id=ev.id, tag="Technology"))
    db.session.commit()
    return ev.id

def test_featured_event_null_when_none(client):
    r = client.get("/api/events/featured")
    assert r.status_code == 200
    assert r.get_json() is None

def test_events_and_featured(client, event):
    events = client.get("/api/events").get_json()
    assert events[0]["tags"] == ["Technology"]
    featured = client.get("/api/events/featured").get_json()
    assert featured["id"] == event and featured["isFeatured"] is True

def test_register_for_event_twice_returns_same_row(client, user, event):
    r1 = client.post(f"/api/events/{event}/register")
    r2 = client.post(f"/api/events/{event}/register")
    assert r1.status_code == r2.status_code == 201
    assert r1.get_json() == r2.get_json()
    assert r1.get_json()["userId"] == user["id"]

# ---------- counseling ----------
def test_counselors_public(client_app, client):
    db.session.add(Counselor(name="Dr. Priya", specialty="Academic", bio="Study plans"))
    db.session.commit()
    assert client.get("/api/counselors").get_json()[0]["name"] == "Dr. Priya"

def test_book_appointment_any_counselor(client, user):
    r = client.post("/api/counseling/appointments", json={
        "type": "mental-health", "appointmentDate": "2025-02-01", "appointmentTime": "15:00",
        "notes": "exam stress", "status": "completed", "userId": 42,
    })
    assert r.status_code == 201
    js = r.get_json()
    assert js["counselorId"] is None
    assert js["status"] == "scheduled"
    assert js["userId"] == user["id"]
    assert js["appointmentTime"] == "15:00:00"

def test_book_appointment_validation(client, user):
    r = client.post("/api/counseling/appointments", json={"type": "career"})
    assert r.status_code == 400
    fields = {e["field"] for e in r.get_json()["errors"]}
    assert fields == {"appointmentDate", "appointmentTime"}

def test_book_appointment_unknown_counselor(client, user):
    r = client.post("/api/counseling/appointments", json={
        "counselorId": 404, "type": "career", "appointmentDate": "2025-02-01", "appointmentTime": "10:00",
    })
    assert r.status_code == 400
    assert r.get_json() == {"message": "Failed to book counseling appointment"}

# ---------- ссылки на несуществующие строки ----------
def test_register_for_unknown_event(client, user):
    r = client.post("/api/events/999/register")
    assert r.status_code == 400
    assert r.get_json() == {"message": "Failed to register for event"}
    assert db.session.execute(select(func.count(EventRegistration.id))).scalar_one() == 0

@pytest.mark.parametrize("refs", [
    {"classId": 77, "scheduleId": 88},
    {"classId": "ds", "scheduleId": 88},
    {"classId": 77, "scheduleId": "mon_early"},
])
def test_mark_attendance_unknown_class_or_schedule(client, user, timetable, refs):
    body = {k: timetable.get(v, v) if isinstance(v, str) else v for k, v in refs.items()}
    r = client.post("/api/attendance", json={**body, "date": "2025-01-06", "status": "present"})
    assert r.status_code == 400
    assert r.get_json() == {"message": "Failed to update attendance"}
    assert db.session.execute(select(func.count(Attendance.id))).scalar_one() == 0
