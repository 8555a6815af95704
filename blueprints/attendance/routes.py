# blueprints/attendance/routes.py
from __future__ import annotations
from datetime import date

from flask import Blueprint, jsonify, request

from blueprints.auth.routes import SessionContext, auth_required
from blueprints.core.clock import campus_today
from blueprints.core.responses import api_call, json_error
from schemas import AttendanceIn, parse
from storage import storage

api_bp = Blueprint("attendance_api", __name__)


@api_bp.get("/attendance/summary")
@auth_required
@api_call("Failed to fetch attendance summary")
def attendance_summary(ctx: SessionContext):
    return jsonify(storage.get_attendance_summary(ctx.user_id).to_json())


@api_bp.get("/attendance")
@auth_required
@api_call("Failed to fetch attendance")
def attendance_for_day(ctx: SessionContext):
    raw = request.args.get("date")
    try:
        day = date.fromisoformat(raw) if raw else campus_today()
    except ValueError:
        return json_error("Invalid request", 400, errors=[{"field": "date", "message": "date must be YYYY-MM-DD"}])
    return jsonify([a.to_json() for a in storage.get_attendance_by_date(ctx.user_id, day)])


@api_bp.post("/attendance")
@auth_required
@api_call("Failed to update attendance")
def mark_attendance(ctx: SessionContext):
    data = parse(AttendanceIn, request.get_json(silent=True) or {}, user_id=ctx.user_id)
    attendance = storage.create_attendance(data)
    return jsonify(attendance.to_json()), 201
