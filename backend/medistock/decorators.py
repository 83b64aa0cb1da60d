# Overview: Request decorators for API routes (typed error responses, idempotency key).

from functools import wraps
from flask import request, jsonify, current_app

from .extensions import db
from .services.errors import StockError, StorageFailure
from .validation import ValidationError


IDEMPOTENCY_HEADER = "Idempotency-Key"


def idempotency_key_from_request(payload: dict | None = None) -> str | None:
    """Idempotency key from the header, or an "idempotency_key" body field."""
    key = request.headers.get(IDEMPOTENCY_HEADER)
    if not key and payload:
        key = payload.get("idempotency_key")
    if key is None:
        return None
    key = str(key).strip()
    if len(key) > 128:
        raise ValidationError("Idempotency key exceeds max length 128")
    return key or None


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data


def handle_stock_errors(action: str):
    """
    Translate service failures into JSON error responses.

    - ValidationError -> 400
    - StockError subclasses -> their http_status, with details
    - storage failures -> 503 (logged)
    - anything else -> 500 (logged)

    The session is rolled back on every failure path.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except ValidationError as e:
                db.session.rollback()
                return jsonify({"error": str(e)}), 400
            except StockError as e:
                db.session.rollback()
                return jsonify({
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "details": e.details,
                }), e.http_status
            except StorageFailure:
                db.session.rollback()
                current_app.logger.exception("Storage failure: %s", action)
                return jsonify({"error": "Storage unavailable"}), 503
            except Exception:
                db.session.rollback()
                current_app.logger.exception("Failed to %s", action)
                return jsonify({"error": "Internal server error"}), 500

        return decorated_function

    return decorator
