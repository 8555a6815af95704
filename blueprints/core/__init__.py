from flask import Blueprint

# core: /health, логирование запросов, visitor cookie, jinja-фильтры
bp = Blueprint("core", __name__)
# core_api: служебные эндпоинты под /api (csrf)
api_bp = Blueprint("core_api", __name__)

from . import routes  # noqa: E402,F401
