from __future__ import annotations

from ..extensions import db
from medistock.time_utils import to_utc_z


class StockTransfer(db.Model):
    """
    Append-only record of packs moved between two locations.

    One row per applied transfer; the matching ledger decrement and
    increment are written in the same DB transaction.
    """
    __tablename__ = "stock_transfers"
    __table_args__ = (
        db.UniqueConstraint("idempotency_key", name="uq_stock_transfers_idempotency_key"),
        db.CheckConstraint("quantity > 0", name="ck_transfer_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    unit_cost_cents = db.Column(db.Integer, nullable=False)

    from_location = db.Column(db.String(32), nullable=False)
    to_location = db.Column(db.String(32), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    # Client-supplied key; replays with the same key are not re-applied
    idempotency_key = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "unit_cost_cents": self.unit_cost_cents,
            "from_location": self.from_location,
            "to_location": self.to_location,
            "quantity": self.quantity,
            "idempotency_key": self.idempotency_key,
            "created_at": to_utc_z(self.created_at),
        }
