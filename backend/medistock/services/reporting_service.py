# Overview: Service-layer operations for reporting; register listings, dashboard figures and CSV export.

from __future__ import annotations

import csv
import io

from flask import current_app

from medistock.models import LOCATIONS, MAIN_STORE, PHARMACY
from medistock.time_utils import to_iso_date, to_utc_z
from .intake_service import latest_buy_prices, list_intakes
from .ledger_service import location_valuation
from .metrics_service import compute_metrics, resolve_unit_cost
from .sales_service import list_recent_sale_lines
from .stock_status import low_stock_report


INTAKE_COLUMNS = [
    ("date", "Date"),
    ("name", "Medicine Name"),
    ("weight", "Weight"),
    ("unit_cost_cents", "Cost per Unit (cents)"),
    ("store_qty", "Store Qty"),
    ("pharmacy_qty", "Pharmacy Qty"),
    ("pos_qty", "Point of Sale Qty"),
    ("total_cost_cents", "Total Cost (cents)"),
]

SALES_COLUMNS = [
    ("time", "Time"),
    ("name", "Medicine Name"),
    ("weight", "Weight"),
    ("quantity", "Qty"),
    ("unit_cost_cents", "Cost per Unit (cents)"),
    ("total_cents", "Total Price (cents)"),
    ("total_cost_cents", "Total Cost (cents)"),
]


def intake_register_rows(limit: int | None = None) -> list[dict]:
    """Intake register with the received packs split by destination."""
    rows = []
    for record, item in list_intakes(limit):
        packs = record.total_packs
        rows.append({
            "id": record.id,
            "date": to_iso_date(record.intake_date),
            "name": item.name,
            "weight": item.weight,
            "destination": record.destination,
            "unit_cost_cents": record.buy_price_cents,
            "store_qty": packs if record.destination == MAIN_STORE else 0,
            "pharmacy_qty": packs if record.destination == PHARMACY else 0,
            "pos_qty": packs if record.destination not in (MAIN_STORE, PHARMACY) else 0,
            # Free packs carry no cost
            "total_cost_cents": record.buy_price_cents * record.pack_qty,
        })
    return rows


def sales_register_rows(limit: int | None = None) -> list[dict]:
    """Most recent sale lines with revenue and cost per line."""
    if limit is None:
        limit = current_app.config.get("REPORT_ROW_LIMIT", 50)

    results = list_recent_sale_lines(limit)
    fallback = latest_buy_prices({line.item_id for line, _, _ in results if not line.unit_cost_cents})

    rows = []
    for line, sale, item in results:
        unit_cost = resolve_unit_cost(line.unit_cost_cents, fallback.get(line.item_id))
        rows.append({
            "id": line.id,
            "sale_id": sale.id,
            "time": to_utc_z(sale.created_at),
            "name": item.name,
            "weight": item.weight,
            "quantity": line.quantity,
            "unit_sell_price_cents": line.unit_sell_price_cents,
            "unit_cost_cents": unit_cost,
            "total_cents": line.quantity * line.unit_sell_price_cents,
            "total_cost_cents": line.quantity * unit_cost,
        })
    return rows


def rows_to_csv(rows: list[dict], columns: list[tuple[str, str]]) -> str:
    """Render report rows as CSV with a header line of column titles."""
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow([title for _, title in columns])
    for row in rows:
        writer.writerow([row.get(key, "") for key, _ in columns])
    return buf.getvalue()


def dashboard_summary() -> dict:
    """Headline figures for the dashboard screen."""
    locations = {}
    for location in LOCATIONS:
        valuation = location_valuation(location)
        locations[location] = {
            "total_packs": valuation["total_packs"],
            "total_value_cents": valuation["total_value_cents"],
            "entry_count": len(valuation["entries"]),
        }

    low_stock = low_stock_report(MAIN_STORE)
    return {
        "metrics": compute_metrics(),
        "locations": locations,
        "low_stock": {
            "location": low_stock["location"],
            "min_packs": low_stock["min_packs"],
            "critical_count": low_stock["critical_count"],
            "warning_count": low_stock["warning_count"],
        },
    }
