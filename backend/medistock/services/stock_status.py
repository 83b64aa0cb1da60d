# Overview: Low-stock classification of ledger entries (critical / warning / ok).

from __future__ import annotations

from flask import current_app

from medistock.models import MAIN_STORE
from medistock.validation import ValidationError, normalize_location
from .ledger_service import list_by_location


CRITICAL = "critical"
WARNING = "warning"
OK = "ok"

STATUSES = (CRITICAL, WARNING, OK)


def classify(current_qty: int, min_qty: int) -> str:
    """
    Stock status of a quantity against a minimum.

    - current <= 25% of min -> critical
    - current <= min        -> warning
    - otherwise             -> ok

    The 25% test is done as 4 * current <= min so it is exact for integers.
    With min = 0 everything is ok except an empty shelf, which is critical.
    """
    if current_qty * 4 <= min_qty:
        return CRITICAL
    if current_qty <= min_qty:
        return WARNING
    return OK


def low_stock_report(location: str = MAIN_STORE, min_packs: int | None = None, status: str | None = None) -> dict:
    """
    Entries at a location that are at or below the pack threshold.

    Thresholds compare pack counts only; loose pills are not counted.
    """
    location = normalize_location(location)
    if min_packs is None:
        min_packs = current_app.config.get("LOW_STOCK_MIN_PACKS", 20)
    if min_packs < 0:
        raise ValidationError("min_packs must be >= 0")
    if status is not None and status not in (CRITICAL, WARNING):
        raise ValidationError("status must be critical or warning")

    alerts = []
    counts = {CRITICAL: 0, WARNING: 0}
    for row in list_by_location(location):
        row_status = classify(row["pack_qty"], min_packs)
        if row_status == OK:
            continue
        counts[row_status] += 1
        if status is None or row_status == status:
            alerts.append({**row, "status": row_status, "min_packs": min_packs})

    # Most urgent first
    alerts.sort(key=lambda a: (a["status"] != CRITICAL, a["pack_qty"], a["name"]))

    return {
        "location": location,
        "min_packs": min_packs,
        "critical_count": counts[CRITICAL],
        "warning_count": counts[WARNING],
        "low_stock_count": counts[CRITICAL] + counts[WARNING],
        "items": alerts,
    }
