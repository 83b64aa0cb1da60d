from __future__ import annotations

from ..extensions import db
from medistock.time_utils import to_utc_z


def normalize_key(value: str | None) -> str:
    """Lookup key for item matching: trimmed, inner whitespace collapsed, lowercase."""
    return " ".join((value or "").split()).lower()


class Item(db.Model):
    """
    Catalog entry for a medicine or retail product.

    MATCHING:
    Intake resolves items by (name, weight), case-insensitive. The normalized
    forms are stored in name_key / weight_key so the lookup is a plain
    equality filter. No unique constraint: a catalog loaded from elsewhere
    may hold duplicates, which intake reports as ambiguous.

    Immutable after creation.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.Index("ix_items_name_weight_key", "name_key", "weight_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    # Strength or unit weight as entered, e.g. "500mg"
    weight = db.Column(db.String(64), nullable=False, default="")
    # Individual units (pills/doses) per sealed pack
    pack_size = db.Column(db.Integer, nullable=True)

    name_key = db.Column(db.String(255), nullable=False)
    weight_key = db.Column(db.String(64), nullable=False, default="")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Item id={self.id} name={self.name!r} weight={self.weight!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "weight": self.weight,
            "pack_size": self.pack_size,
            "created_at": to_utc_z(self.created_at),
        }
