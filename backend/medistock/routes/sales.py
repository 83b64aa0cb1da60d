# Overview: Flask API routes for point-of-sale transactions; parses input and returns JSON responses.

# backend/medistock/routes/sales.py
"""Sales API routes"""

from flask import Blueprint, jsonify

from ..services import sales_service
from ..validation import ValidationError
from ..decorators import handle_stock_errors, idempotency_key_from_request, json_body


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@handle_stock_errors("record sale")
def record_sale_route():
    """
    Record a sale against Point-of-Sale stock.

    Headers:
        Idempotency-Key (optional): a replay returns the original sale

    Request body:
    {
        "lines": [
            {
                "item_id": int,
                "quantity": int,
                "unit_sell_price_cents": int,
                "unit_cost_cents": int (optional, selects the cost lot)
            }
        ]
    }

    A single-line sale may also be sent as the line object itself.
    """
    data = json_body()
    lines = data.get("lines")
    if lines is None and "item_id" in data:
        lines = [data]
    if not isinstance(lines, list):
        raise ValidationError("lines must be a list")

    sale = sales_service.record_sale(lines, idempotency_key=idempotency_key_from_request(data))

    return jsonify({
        "sale": sale.to_dict(),
        "lines": [line.to_dict() for line in sale.lines],
    }), 201


@sales_bp.get("/<int:sale_id>")
@handle_stock_errors("load sale")
def get_sale_route(sale_id: int):
    """Get sale with lines."""
    sale = sales_service.get_sale(sale_id)
    return jsonify({
        "sale": sale.to_dict(),
        "lines": [line.to_dict() for line in sale.lines],
    }), 200
