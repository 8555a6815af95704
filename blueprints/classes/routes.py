# blueprints/classes/routes.py
from __future__ import annotations

from flask import Blueprint, jsonify, request

from blueprints.auth.routes import SessionContext, auth_required
from blueprints.core.clock import campus_today, day_index
from blueprints.core.responses import api_call, json_error
from storage import storage

api_bp = Blueprint("classes_api", __name__)


@api_bp.get("/classes")
@api_call("Failed to fetch classes")
def list_classes():
    return jsonify([c.to_json() for c in storage.get_all_classes()])


@api_bp.get("/classes/today")
@auth_required
@api_call("Failed to fetch today's classes")
def today_classes(ctx: SessionContext):
    day = day_index(campus_today())
    return jsonify([c.to_json() for c in storage.get_classes_by_day(day)])


@api_bp.get("/classes/day")
@auth_required
@api_call("Failed to fetch classes for day")
def classes_for_day(ctx: SessionContext):
    day = request.args.get("day", type=int)
    if day is None or not 0 <= day <= 6:
        return json_error("Invalid request", 400, errors=[{"field": "day", "message": "day must be an integer 0-6"}])
    return jsonify([c.to_json() for c in storage.get_classes_by_day(day)])


@api_bp.get("/schedules")
@api_call("Failed to fetch schedules")
def list_schedules():
    return jsonify([s.to_json() for s in storage.get_all_schedules()])
