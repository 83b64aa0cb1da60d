# Overview: Flask API routes for per-location stock views and physical count adjustments.

from flask import Blueprint, jsonify

from ..services import ledger_service
from ..validation import optional_int, require_int
from ..decorators import handle_stock_errors, json_body


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.get("/<location>")
@handle_stock_errors("list stock")
def list_stock_route(location: str):
    """
    All cost lots at a location with item name, weight and pack size.

    location: MAIN_STORE, PHARMACY, POINT_OF_SALE (display names accepted)
    """
    valuation = ledger_service.location_valuation(location)
    return jsonify({
        "location": valuation["location"],
        "total_packs": valuation["total_packs"],
        "total_value_cents": valuation["total_value_cents"],
        "entries": valuation["entries"],
    }), 200


@stock_bp.post("/adjust")
@handle_stock_errors("adjust stock")
def adjust_stock_route():
    """
    Set a cost lot to a physically counted quantity.

    Request body:
    {
        "item_id": int,
        "location": str,
        "unit_cost_cents": int,
        "counted_qty": int,
        "counted_pills": int (optional),
        "reason": str (optional)
    }
    """
    data = json_body()
    adjustment = ledger_service.adjust_stock(
        item_id=require_int(data, "item_id"),
        location=data.get("location"),
        unit_cost_cents=require_int(data, "unit_cost_cents", minimum=0),
        counted_qty=require_int(data, "counted_qty", minimum=0),
        counted_pills=optional_int(data, "counted_pills", minimum=0),
        reason=data.get("reason"),
    )
    return jsonify({"adjustment": adjustment.to_dict()}), 200
