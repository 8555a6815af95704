from __future__ import annotations
import logging
from functools import wraps
from typing import Any, Callable

from flask import jsonify

from schemas import SchemaError
from storage import ConstraintViolation, StorageError

log = logging.getLogger(__name__)


def json_error(message: str, status: int = 400, **extra: Any):
    body = {"message": message}
    body.update(extra)
    return jsonify(body), status


def api_call(failure_message: str) -> Callable:
    """Граница HTTP: SchemaError -> 400 с ошибками по полям, ConstraintViolation -> 400,
    StorageError -> 500 без деталей."""
    def decorator(fn: Callable) -> Callable:
        @wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except SchemaError as se:
                return json_error("Invalid request", 400, errors=se.to_json())
            except ConstraintViolation as cv:
                log.warning("%s: %s", failure_message, cv)
                return json_error(failure_message, 400)
            except StorageError:
                log.exception("%s", failure_message)
                return json_error(failure_message, 500)
        return wrapper
    return decorator
