# backend/medistock/routes/transfers.py
"""
Stock transfer API routes.
"""
from flask import Blueprint, request, jsonify

from medistock.services import transfer_service
from medistock.validation import require_int
from medistock.decorators import handle_stock_errors, idempotency_key_from_request, json_body


transfers_bp = Blueprint("transfers", __name__, url_prefix="/api/transfers")


@transfers_bp.route("", methods=["POST"])
@handle_stock_errors("transfer stock")
def create_transfer():
    """
    Move packs of one cost lot between locations.

    Headers:
        Idempotency-Key (optional): replays with the same key are not re-applied

    Request body:
    {
        "item_id": int,
        "unit_cost_cents": int,
        "from_location": str,
        "to_location": str,
        "quantity": int
    }

    Returns:
        201: Transfer applied (or the original transfer, on replay)
        400: Invalid request
        404: Source lot not found
        409: Insufficient stock / idempotency key conflict
    """
    data = json_body()
    key = idempotency_key_from_request(data)
    transfer = transfer_service.transfer(
        item_id=require_int(data, "item_id"),
        unit_cost_cents=require_int(data, "unit_cost_cents", minimum=0),
        from_location=data.get("from_location"),
        to_location=data.get("to_location"),
        quantity=require_int(data, "quantity"),
        idempotency_key=key,
    )

    return jsonify({"transfer": transfer.to_dict()}), 201


@transfers_bp.route("", methods=["GET"])
@handle_stock_errors("list transfers")
def list_transfers():
    limit = request.args.get("limit", type=int)
    transfers = transfer_service.list_transfers(limit)
    return jsonify({"transfers": [t.to_dict() for t in transfers]}), 200
