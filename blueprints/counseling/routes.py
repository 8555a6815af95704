# blueprints/counseling/routes.py
from __future__ import annotations

from flask import Blueprint, jsonify, request

from blueprints.auth.routes import SessionContext, auth_required
from blueprints.core.responses import api_call
from schemas import CounselingAppointmentIn, parse
from storage import storage

api_bp = Blueprint("counseling_api", __name__)


@api_bp.get("/counselors")
@api_call("Failed to fetch counselors")
def list_counselors():
    return jsonify([c.to_json() for c in storage.get_all_counselors()])


@api_bp.post("/counseling/appointments")
@auth_required
@api_call("Failed to book counseling appointment")
def book_appointment(ctx: SessionContext):
    # статус назначает сервер, клиент его не выбирает
    data = parse(
        CounselingAppointmentIn,
        request.get_json(silent=True) or {},
        user_id=ctx.user_id,
        status="scheduled",
    )
    appointment = storage.create_counseling_appointment(data)
    return jsonify(appointment.to_json()), 201
