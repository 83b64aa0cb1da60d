from __future__ import annotations

from ..extensions import db
from medistock.time_utils import to_utc_z, utc_timestamp


class Sale(db.Model):
    """
    Point-of-sale transaction header.

    Created in the same DB transaction as its lines and the Point-of-Sale
    ledger decrements; there is no draft state. Immutable once written.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("idempotency_key", name="uq_sales_idempotency_key"),
        db.Index("ix_sales_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Sum of line totals, in cents
    total_cents = db.Column(db.Integer, nullable=False)

    # Client-supplied key; a replayed request returns this sale unchanged
    idempotency_key = db.Column(db.String(128), nullable=True)

    # Stamped in Python so stored values compare cleanly with report bounds
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utc_timestamp)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "total_cents": self.total_cents,
            "idempotency_key": self.idempotency_key,
            "created_at": to_utc_z(self.created_at),
        }


class SaleLine(db.Model):
    """
    One item sold on a sale.

    unit_cost_cents is the cost of the Point-of-Sale lot the packs were taken
    from. It may be NULL or 0 on rows written by older clients; profit
    reporting then falls back to the item's most recent intake price.
    """
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_line_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_sell_price_cents = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=True)

    # quantity * unit_sell_price_cents
    line_total_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", backref=db.backref("lines", lazy=True, order_by="SaleLine.id"))
    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "unit_sell_price_cents": self.unit_sell_price_cents,
            "unit_cost_cents": self.unit_cost_cents,
            "line_total_cents": self.line_total_cents,
        }
