# Overview: Flask API routes for purchase intake (buy stock).

from flask import Blueprint, jsonify, request

from ..services import intake_service
from ..time_utils import parse_iso_date
from ..validation import ValidationError, optional_int, optional_text, require_int, require_text
from ..decorators import handle_stock_errors, json_body


intake_bp = Blueprint("intake", __name__, url_prefix="/api/intake")


@intake_bp.post("")
@handle_stock_errors("record intake")
def record_intake_route():
    """
    Record a purchase and stock it at the destination.

    Request body:
    {
        "date": "YYYY-MM-DD" (optional, defaults to today),
        "destination": "MAIN_STORE" | "PHARMACY" | "POINT_OF_SALE",
        "name": str,
        "weight": str (optional),
        "pack_size": int (optional, used when the item is new),
        "pack_qty": int,
        "free_packs": int (optional),
        "buy_price_cents": int,
        "retail_price_cents": int (optional)
    }

    Returns:
        201: intake recorded, with the resolved item
        400: invalid request
        409: more than one catalog item matches name + weight
    """
    data = json_body()
    try:
        intake_date = parse_iso_date(data.get("date"))
    except ValueError:
        raise ValidationError("date must be YYYY-MM-DD")

    record = intake_service.record_intake(
        intake_date=intake_date,
        destination=data.get("destination"),
        name=require_text(data, "name"),
        weight=optional_text(data, "weight", max_length=64),
        pack_size=optional_int(data, "pack_size", minimum=1),
        pack_qty=require_int(data, "pack_qty", minimum=0),
        free_packs=optional_int(data, "free_packs", default=0, minimum=0),
        buy_price_cents=require_int(data, "buy_price_cents", minimum=0),
        retail_price_cents=optional_int(data, "retail_price_cents", minimum=0),
    )
    return jsonify({
        "intake": record.to_dict(),
        "item": record.item.to_dict(),
    }), 201


@intake_bp.get("")
@handle_stock_errors("list intake records")
def list_intake_route():
    limit = request.args.get("limit", type=int)
    rows = intake_service.list_intakes(limit)
    return jsonify({
        "intakes": [
            {**record.to_dict(), "name": item.name, "weight": item.weight}
            for record, item in rows
        ]
    }), 200
