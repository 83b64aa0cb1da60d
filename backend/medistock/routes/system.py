# backend/medistock/routes/system.py
"""
Liveness endpoint for the stock API.
"""

import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy import func

from ..extensions import db
from ..models import Item, LedgerEntry
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def _probe_database() -> dict:
    """Count catalog items and ledger lots per location; any failure marks the store down."""
    started = time.perf_counter()
    try:
        items = db.session.query(func.count(Item.id)).scalar()
        lots = dict(
            db.session.query(LedgerEntry.location, func.count(LedgerEntry.id))
            .group_by(LedgerEntry.location)
            .all()
        )
        result = {
            "status": "healthy",
            "items": items,
            "ledger_entries": lots,
        }
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Health probe could not reach the stock database")
        result = {"status": "unhealthy", "error": "Database error"}

    result["latency_ms"] = round((time.perf_counter() - started) * 1000, 2)
    return result


@system_bp.get("/health")
def health():
    """200 while the stock database answers, 503 otherwise."""
    database = _probe_database()
    return jsonify({
        "status": database["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database},
    }), 200 if database["status"] == "healthy" else 503
