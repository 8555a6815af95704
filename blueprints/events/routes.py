# blueprints/events/routes.py
from __future__ import annotations

from flask import Blueprint, jsonify

from blueprints.auth.routes import SessionContext, auth_required
from blueprints.core.responses import api_call
from schemas import EventRegistrationIn, parse
from storage import storage

api_bp = Blueprint("events_api", __name__)


@api_bp.get("/events")
@api_call("Failed to fetch events")
def list_events():
    return jsonify([e.to_json() for e in storage.get_all_events()])


@api_bp.get("/events/featured")
@api_call("Failed to fetch featured event")
def featured_event():
    event = storage.get_featured_event()
    # нет избранного: null, а не 404
    return jsonify(event.to_json() if event else None)


@api_bp.post("/events/<int:event_id>/register")
@auth_required
@api_call("Failed to register for event")
def register_for_event(event_id: int, ctx: SessionContext):
    data = parse(EventRegistrationIn, {"eventId": event_id, "userId": ctx.user_id})
    registration = storage.register_for_event(data)
    return jsonify(registration.to_json()), 201
