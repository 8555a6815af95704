# blueprints/auth/routes.py
from __future__ import annotations
import logging
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Optional

from flask import Blueprint, current_app, jsonify, redirect, request, session, url_for
from flask_login import UserMixin, current_user, login_user, logout_user
from werkzeug.security import check_password_hash, generate_password_hash

from extensions import login_manager
from schemas import LoginIn, SchemaError, UserIn, UserRow, parse
from storage import ConstraintViolation, StorageError, storage
from blueprints.core.responses import json_error

log = logging.getLogger(__name__)

api_bp = Blueprint("auth_api", __name__)


# ---- пользователь для Flask-Login: снимок строки users без хеша пароля
@dataclass(eq=False)
class SessionUser(UserMixin):
    id: int
    username: str
    full_name: str
    email: str
    role: str

    @classmethod
    def from_row(cls, row: UserRow) -> "SessionUser":
        return cls(id=row.id, username=row.username, full_name=row.full_name, email=row.email, role=row.role)


@login_manager.user_loader
def load_user(uid: str) -> Optional[SessionUser]:
    try:
        row = storage.get_user(int(uid))
    except (ValueError, StorageError):
        return None
    return SessionUser.from_row(row) if row else None


# ---------- явный контекст сессии для обработчиков ----------
@dataclass(frozen=True)
class SessionContext:
    user_id: int
    username: str
    full_name: str
    role: str

    @property
    def display_name(self) -> str:
        parts = (self.full_name or "").split()
        return parts[0] if parts else self.username


def auth_required(fn: Callable):
    """401 без сессии; иначе передаёт в обработчик ctx=SessionContext."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated:
            return json_error("Authentication required", 401)
        ctx = SessionContext(
            user_id=current_user.id,
            username=current_user.username,
            full_name=current_user.full_name,
            role=current_user.role,
        )
        return fn(*args, ctx=ctx, **kwargs)
    return wrapper


@login_manager.unauthorized_handler
def _unauth():
    if request.path.startswith("/api/") or request.accept_mimetypes.best == "application/json":
        return jsonify({"message": "Authentication required"}), 401
    return redirect(url_for("pages.auth", next=request.path))


def _start_session(user: SessionUser) -> None:
    # новый sid после входа, старый удаляется из хранилища
    regenerate = getattr(current_app.session_interface, "regenerate", None)
    if regenerate is not None:
        regenerate(session)
    login_user(user)


# ---------- API ----------
@api_bp.post("/register")
def api_register():
    payload = request.get_json(silent=True) or {}
    try:
        data = parse(UserIn, payload, role="student")
    except SchemaError as se:
        return json_error("Invalid request", 400, errors=se.to_json())

    try:
        if storage.get_user_by_username(data.username):
            return json_error("Username already exists", 400)
        if storage.get_user_by_email(data.email):
            return json_error("Email already exists", 400)
        row = storage.create_user(data.model_copy(update={"password": generate_password_hash(data.password)}))
    except ConstraintViolation:
        # гонка двух регистраций с одинаковыми данными
        return json_error("Username or email already exists", 400)
    except StorageError:
        log.exception("registration failed")
        return json_error("Registration failed", 500)

    _start_session(SessionUser.from_row(row))
    log.info("user registered", extra={"user_id": row.id})
    return jsonify(row.public().to_json()), 201


@api_bp.post("/login")
def api_login():
    payload = request.get_json(silent=True) or request.form or {}
    try:
        creds = parse(LoginIn, dict(payload))
    except SchemaError as se:
        return json_error("Invalid request", 400, errors=se.to_json())

    try:
        row = storage.get_user_by_username(creds.username.strip())
    except StorageError:
        log.exception("login lookup failed")
        return json_error("Login failed", 500)

    if not row or not check_password_hash(row.password, creds.password):
        return json_error("Invalid username or password", 401)

    _start_session(SessionUser.from_row(row))
    return jsonify(row.public().to_json())


@api_bp.post("/logout")
def api_logout():
    logout_user()
    return jsonify({"ok": True})


@api_bp.get("/user")
@auth_required
def api_user(ctx: SessionContext):
    try:
        row = storage.get_user(ctx.user_id)
    except StorageError:
        log.exception("user lookup failed")
        return json_error("Failed to fetch user", 500)
    if row is None:
        return json_error("Authentication required", 401)
    return jsonify(row.public().to_json())
