# Overview: Flask API routes for the item catalog.

from flask import Blueprint, jsonify, request

from ..extensions import db
from ..models import Item
from ..models.catalog import normalize_key
from ..decorators import handle_stock_errors


items_bp = Blueprint("items", __name__, url_prefix="/api/items")


@items_bp.get("")
@handle_stock_errors("list items")
def list_items_route():
    """
    List catalog items, optionally filtered by a name substring (?q=).
    """
    q = db.session.query(Item)
    search = request.args.get("q")
    if search:
        q = q.filter(Item.name_key.contains(normalize_key(search)))
    items = q.order_by(Item.name.asc(), Item.weight.asc()).all()
    return jsonify({"items": [item.to_dict() for item in items]}), 200
