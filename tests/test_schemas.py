from __future__ import annotations
from datetime import date, datetime, time

import pytest

from schemas import (
    AttendanceIn, ChatMessageIn, ClassOut, CounselingAppointmentIn, EventWithTags,
    ScheduleIn, SchemaError, UserIn, parse,
)

def _fields(err: SchemaError) -> set[str]:
    return {e.field for e in err.errors}

def test_parse_reports_every_missing_field():
    with pytest.raises(SchemaError) as ei:
        parse(UserIn, {})
    assert {"username", "password", "fullName", "email"} <= _fields(ei.value)

def test_parse_accepts_camel_and_snake_names():
    a = parse(AttendanceIn, {"userId": 1, "classId": 2, "scheduleId": 3, "date": "2025-01-06", "status": "present"})
    b = parse(AttendanceIn, {"user_id": 1, "class_id": 2, "schedule_id": 3, "date": "2025-01-06", "status": "present"})
    assert a == b
    assert a.date == date(2025, 1, 6)

def test_override_wins_over_client_value():
    payload = {"userId": 999, "user_id": 998, "classId": 2, "scheduleId": 3, "date": "2025-01-06", "status": "absent"}
    a = parse(AttendanceIn, payload, user_id=1)
    assert a.user_id == 1

def test_override_requires_object_payload():
    with pytest.raises(SchemaError) as ei:
        parse(AttendanceIn, [1, 2, 3], user_id=1)
    assert _fields(ei.value) == {"body"}

def test_attendance_status_is_closed_set():
    with pytest.raises(SchemaError) as ei:
        parse(AttendanceIn, {"classId": 2, "scheduleId": 3, "date": "2025-01-06", "status": "late"}, user_id=1)
    assert _fields(ei.value) == {"status"}

def test_schedule_day_range():
    with pytest.raises(SchemaError) as ei:
        parse(ScheduleIn, {"classId": 1, "dayOfWeek": 7, "startTime": "09:00", "endTime": "10:00"})
    assert _fields(ei.value) == {"dayOfWeek"}

def test_schedule_end_after_start():
    with pytest.raises(SchemaError) as ei:
        parse(ScheduleIn, {"classId": 1, "dayOfWeek": 1, "startTime": "10:00", "endTime": "10:00"})
    assert "endTime must be after startTime" in ei.value.errors[0].message

def test_user_fields_are_trimmed():
    u = parse(UserIn, {"username": "  pulkit ", "password": "pw", "fullName": " Pulkit ", "email": " p@campus.edu "})
    assert (u.username, u.full_name, u.email) == ("pulkit", "Pulkit", "p@campus.edu")
    assert u.role == "student"

def test_blank_username_rejected():
    with pytest.raises(SchemaError) as ei:
        parse(UserIn, {"username": "   ", "password": "pw", "fullName": "P", "email": "p@campus.edu"})
    assert _fields(ei.value) == {"username"}

def test_counselor_optional_and_default_status():
    base = {"userId": 1, "appointmentDate": "2025-02-01", "appointmentTime": "14:30", "type": "career"}
    a = parse(CounselingAppointmentIn, base)
    assert a.counselor_id is None
    assert a.status == "scheduled"
    assert a.appointment_time == time(14, 30)

    b = parse(CounselingAppointmentIn, {**base, "counselorId": ""})
    assert b.counselor_id is None

def test_counseling_type_rejected():
    with pytest.raises(SchemaError) as ei:
        parse(CounselingAppointmentIn, {"userId": 1, "appointmentDate": "2025-02-01",
                                        "appointmentTime": "14:30", "type": "astrology"})
    assert _fields(ei.value) == {"type"}

def test_chat_content_stripped_and_required():
    m = parse(ChatMessageIn, {"content": "  hi  "}, user_id=1, is_user_message=True)
    assert m.content == "hi"
    with pytest.raises(SchemaError) as ei:
        parse(ChatMessageIn, {"content": "   "}, user_id=1, is_user_message=True)
    assert _fields(ei.value) == {"content"}

def test_schema_error_json_shape():
    with pytest.raises(SchemaError) as ei:
        parse(ChatMessageIn, {}, user_id=1, is_user_message=True)
    assert ei.value.to_json() == [{"field": "content", "message": "Field required"}]

def test_out_shapes_serialize_camel_case():
    c = ClassOut(id=1, name="OS", professor="Dr. K", location="CS-110", color="#FF6D00")
    assert set(c.to_json()) == {"id", "name", "description", "professor", "location", "color"}

    ev = EventWithTags(
        id=1, title="Tech Fest", date=date(2025, 3, 1), start_time=time(10, 0), location="Hall",
        is_featured=True, created_at=datetime(2025, 1, 1, 12, 0), tags=["Tech"],
    )
    js = ev.to_json()
    assert js["isFeatured"] is True
    assert js["startTime"] == "10:00:00"
    assert js["date"] == "2025-03-01"
    assert js["tags"] == ["Tech"]
    assert js["imageUrl"] is None
