from __future__ import annotations
import logging
import time
from uuid import uuid4

from flask import current_app, g, jsonify, request
from flask_login import current_user
from flask_wtf.csrf import generate_csrf
from werkzeug.wrappers.response import Response

from extensions import csrf

from . import api_bp, bp
from .filters import register_filters
from .logs import iso_utc, setup_json_logging

http_log = logging.getLogger("campus.http")

VISITOR_COOKIE = "visitor_id"
VISITOR_MAX_AGE = 60 * 60 * 24 * 180  # 180 дней


@bp.record_once
def _on_register(state):
    app = state.app
    setup_json_logging(app.config.get("LOG_LEVEL", logging.INFO))
    register_filters(app)


@bp.before_app_request
def _start_request():
    g.request_started = time.perf_counter()
    vid = request.cookies.get(VISITOR_COOKIE)
    if not vid:
        vid = uuid4().hex
        g.new_visitor_id = vid
    g.visitor_id = vid


@bp.after_app_request
def _finish_request(response: Response):
    new_vid = g.pop("new_visitor_id", None)
    if new_vid:
        response.set_cookie(
            VISITOR_COOKIE,
            new_vid,
            max_age=VISITOR_MAX_AGE,
            secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
            samesite="Lax",
        )

    started = g.get("request_started")
    # current_user не трогаем для статики: лишний запрос в БД
    user_id = None
    if request.endpoint != "static" and current_user and current_user.is_authenticated:
        user_id = current_user.id
    http_log.info(
        "%s %s -> %s", request.method, request.path, response.status_code,
        extra={
            "event": "http_request",
            "path": request.path,
            "method": request.method,
            "status": response.status_code,
            "duration_ms": round((time.perf_counter() - started) * 1000) if started else None,
            "visitor_id": g.get("visitor_id"),
            "user_id": user_id,
        },
    )
    return response


@api_bp.get("/csrf")
@csrf.exempt
def get_csrf():
    return jsonify({"csrf": generate_csrf()})


@bp.get("/health")
def health():
    return jsonify({
        "status": "ok",
        "ts": iso_utc(timespec="seconds"),
        "visitor_id": g.get("visitor_id"),
    })
