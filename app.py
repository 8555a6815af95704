from __future__ import annotations
import logging
import os
from importlib import import_module
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException
from werkzeug.security import generate_password_hash
from sqlalchemy import inspect

from config import config_map
from extensions import db, migrate, login_manager, csrf
from assistant import init_assistant
from sessions import init_sessions

log = logging.getLogger(__name__)

def _seed_from_config(app):
    if not app.config.get("SEED_TEST_DATA"):
        return
    with app.app_context():
        # таблица users может ещё не быть создана (alembic upgrade и т.п.)
        if not inspect(db.engine).has_table("users"):
            return

        from schemas import UserIn  # локальный импорт, чтобы избежать циклов
        from storage import storage
        created = 0
        for u in app.config.get("DEFAULT_USERS", []):
            if storage.get_user_by_username(u["username"]) or storage.get_user_by_email(u["email"]):
                continue
            data = UserIn.model_validate(u)
            storage.create_user(data.model_copy(update={"password": generate_password_hash(data.password)}))
            created += 1
        if created:
            log.info("seeded default users", extra={"event": "seed_users"})

def register_blueprints(app: Flask) -> None:
    # Жёстко импортируем модуль с маршрутами core перед взятием bp
    import_module("blueprints.core.routes")
    from blueprints.core import bp as core_bp, api_bp as core_api_bp
    from blueprints.pages.routes import bp as pages_bp
    from blueprints.auth.routes import api_bp as auth_api_bp
    from blueprints.classes.routes import api_bp as classes_api_bp
    from blueprints.attendance.routes import api_bp as attendance_api_bp
    from blueprints.resources.routes import api_bp as resources_api_bp
    from blueprints.events.routes import api_bp as events_api_bp
    from blueprints.counseling.routes import api_bp as counseling_api_bp
    from blueprints.chat.routes import api_bp as chat_api_bp

    # core без префикса → '/health' в корне; страницы тоже от корня
    app.register_blueprint(core_bp)
    app.register_blueprint(pages_bp)
    for api in (core_api_bp, auth_api_bp, classes_api_bp, attendance_api_bp,
                resources_api_bp, events_api_bp, counseling_api_bp, chat_api_bp):
        app.register_blueprint(api, url_prefix="/api")

def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(Exception)
    def _unhandled(exc):
        if isinstance(exc, HTTPException):
            if request.path.startswith("/api/"):
                return jsonify({"message": exc.description}), exc.code
            return exc
        log.exception("unhandled error", extra={"path": request.path, "method": request.method})
        if request.path.startswith("/api/"):
            return jsonify({"message": "Internal server error"}), 500
        return "Internal server error", 500

def create_app(config_name: str | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    cfg_name = config_name or os.getenv("FLASK_CONFIG", "default")
    app.config.from_object(config_map[cfg_name])
    app.json.sort_keys = False
    # --- изоляция БД в тестах ---
    # pytest всегда выставляет переменную окружения PYTEST_CURRENT_TEST.
    if os.environ.get("PYTEST_CURRENT_TEST"):
        app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"
        app.config.setdefault("SQLALCHEMY_ENGINE_OPTIONS", {"connect_args": {"check_same_thread": False}})

    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError:
        pass
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    init_sessions(app)
    init_assistant(app)
    register_blueprints(app)
    register_error_handlers(app)
    _seed_from_config(app)
    return app
