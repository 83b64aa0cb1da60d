from __future__ import annotations

from ..extensions import db
from medistock.time_utils import to_utc_z, to_iso_date


class IntakeRecord(db.Model):
    """
    Append-only purchase (intake) event.

    WHY: The intake register is the audit trail for stock entering the
    business, and the cost-history fallback for profit reporting: the most
    recent record per item (intake_date desc, id desc) supplies the buy price
    for sale lines that carry no cost of their own.

    IMMUTABLE: never updated or deleted.
    """
    __tablename__ = "intake_records"
    __table_args__ = (
        db.CheckConstraint("pack_qty >= 0", name="ck_intake_pack_qty_nonnegative"),
        db.CheckConstraint("free_packs >= 0", name="ck_intake_free_packs_nonnegative"),
        db.Index("ix_intake_item_date", "item_id", "intake_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Business date of the purchase
    intake_date = db.Column(db.Date, nullable=False, index=True)

    # Location the packs were put into
    destination = db.Column(db.String(32), nullable=False)

    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)

    pack_qty = db.Column(db.Integer, nullable=False)
    # Bonus packs supplied free of charge
    free_packs = db.Column(db.Integer, nullable=False, default=0)

    buy_price_cents = db.Column(db.Integer, nullable=False)
    retail_price_cents = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    item = db.relationship("Item", backref=db.backref("intake_records", lazy=True))

    @property
    def total_packs(self) -> int:
        return (self.pack_qty or 0) + (self.free_packs or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "intake_date": to_iso_date(self.intake_date),
            "destination": self.destination,
            "item_id": self.item_id,
            "pack_qty": self.pack_qty,
            "free_packs": self.free_packs,
            "total_packs": self.total_packs,
            "buy_price_cents": self.buy_price_cents,
            "retail_price_cents": self.retail_price_cents,
            "created_at": to_utc_z(self.created_at),
        }
