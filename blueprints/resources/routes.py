# blueprints/resources/routes.py
from __future__ import annotations

from flask import Blueprint, jsonify, request

from blueprints.core.responses import api_call
from storage import storage

api_bp = Blueprint("resources_api", __name__)


@api_bp.get("/resources")
@api_call("Failed to fetch resources")
def list_resources():
    category = (request.args.get("category") or "").strip() or None
    search = (request.args.get("search") or "").strip() or None
    return jsonify([r.to_json() for r in storage.get_resources(category, search)])


@api_bp.get("/resources/categories")
@api_call("Failed to fetch resource categories")
def resource_categories():
    return jsonify(storage.get_resource_categories())
