from __future__ import annotations

from ..extensions import db
from medistock.time_utils import to_utc_z


MAIN_STORE = "MAIN_STORE"
PHARMACY = "PHARMACY"
POINT_OF_SALE = "POINT_OF_SALE"

LOCATIONS = (MAIN_STORE, PHARMACY, POINT_OF_SALE)

LOCATION_LABELS = {
    MAIN_STORE: "Main Store",
    PHARMACY: "Pharmacy",
    POINT_OF_SALE: "Point of Sale",
}

# Normalized spellings that mean the same place (keys are upper/underscored)
LOCATION_ALIASES = {
    "MAIN": MAIN_STORE,
    "STORE": MAIN_STORE,
    "POS": POINT_OF_SALE,
    "POINT_OF_SALES": POINT_OF_SALE,
}


class LedgerEntry(db.Model):
    """
    Quantity on hand for one cost lot of one item at one location.

    COST-LOT KEYING:
    (item_id, location, unit_cost_cents) is unique. Stock of the same item
    bought at different prices is kept in separate rows so that a sale can
    record the cost of the lot it consumed. Costs are integer cents, so lot
    equality is exact.

    MUTATION:
    pack_qty is only changed through ledger_service.upsert_quantity() (or a
    physical-count adjustment), which issues a single conditional UPDATE.
    The CHECK constraints are the last line against negative stock.

    pill_qty holds loose units outside sealed packs. It is carried and
    displayed but not used in stock status thresholds.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (
        db.UniqueConstraint("item_id", "location", "unit_cost_cents", name="uq_ledger_item_location_cost"),
        db.CheckConstraint("pack_qty >= 0", name="ck_ledger_pack_qty_nonnegative"),
        db.CheckConstraint("pill_qty >= 0", name="ck_ledger_pill_qty_nonnegative"),
        db.Index("ix_ledger_location_item", "location", "item_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)

    # MAIN_STORE, PHARMACY, POINT_OF_SALE
    location = db.Column(db.String(32), nullable=False, index=True)

    # Acquisition cost per pack, in cents
    unit_cost_cents = db.Column(db.Integer, nullable=False)

    pack_qty = db.Column(db.Integer, nullable=False, default=0)
    pill_qty = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_updated = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    item = db.relationship("Item", backref=db.backref("ledger_entries", lazy=True))

    def __repr__(self) -> str:
        return (
            f"<LedgerEntry item_id={self.item_id} location={self.location} "
            f"cost={self.unit_cost_cents} packs={self.pack_qty}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "location": self.location,
            "unit_cost_cents": self.unit_cost_cents,
            "pack_qty": self.pack_qty,
            "pill_qty": self.pill_qty,
            "last_updated": to_utc_z(self.last_updated),
        }


class StockAdjustment(db.Model):
    """
    Append-only record of a physical stock count applied to a ledger entry.

    WHY: Setting a lot to a counted quantity bypasses intake/sale/transfer,
    so the previous figure is kept here for the audit trail.
    """
    __tablename__ = "stock_adjustments"
    __table_args__ = (
        db.CheckConstraint("counted_qty >= 0", name="ck_adjust_counted_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    location = db.Column(db.String(32), nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)

    previous_qty = db.Column(db.Integer, nullable=False)
    counted_qty = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "location": self.location,
            "unit_cost_cents": self.unit_cost_cents,
            "previous_qty": self.previous_qty,
            "counted_qty": self.counted_qty,
            "quantity_delta": self.counted_qty - self.previous_qty,
            "reason": self.reason,
            "created_at": to_utc_z(self.created_at),
        }
