# Overview: Service-layer operations for the stock ledger; the only code that changes pack quantities.

from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Item, LedgerEntry, StockAdjustment
from medistock.time_utils import utcnow
from medistock.validation import ValidationError, normalize_location
from .concurrency import lock_for_update, run_in_transaction
from .errors import EntryNotFound, InsufficientStock
"""
Stock Ledger Invariants (authoritative)

- One LedgerEntry per (item_id, location, unit_cost_cents): a cost lot.
- pack_qty >= 0 at all times. Every change is a single conditional UPDATE
  (pack_qty = pack_qty + delta WHERE pack_qty + delta >= 0), so the check
  and the write cannot be separated by a concurrent writer.
- A missing lot is created only by a positive delta, with pill_qty = 0.
- Functions here never commit. Callers own the transaction boundary so a
  ledger change commits or rolls back together with the intake, transfer or
  sale record that caused it.
"""


logger = logging.getLogger(__name__)


def _find_entry(item_id: int, location: str, unit_cost_cents: int, *, lock: bool = False) -> LedgerEntry | None:
    query = db.session.query(LedgerEntry).filter_by(
        item_id=item_id,
        location=location,
        unit_cost_cents=unit_cost_cents,
    ).populate_existing()
    if lock:
        query = lock_for_update(query)
    return query.first()


def upsert_quantity(item_id: int, location: str, unit_cost_cents: int, delta: int) -> LedgerEntry:
    """
    Add delta packs to the (item, location, unit cost) lot.

    - Existing lot: pack_qty += delta, or InsufficientStock if that would go
      below zero (the row is left unchanged).
    - Missing lot, delta > 0: created with pack_qty = delta, pill_qty = 0.
    - Missing lot, delta <= 0: EntryNotFound.

    Stamps last_updated. Does not commit.
    """
    location = normalize_location(location)
    now = utcnow()

    stmt = (
        update(LedgerEntry)
        .where(
            LedgerEntry.item_id == item_id,
            LedgerEntry.location == location,
            LedgerEntry.unit_cost_cents == unit_cost_cents,
            LedgerEntry.pack_qty + delta >= 0,
        )
        .values(pack_qty=LedgerEntry.pack_qty + delta, last_updated=now)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        return _find_entry(item_id, location, unit_cost_cents)

    existing = _find_entry(item_id, location, unit_cost_cents)
    if existing is not None:
        raise InsufficientStock(
            f"Insufficient stock for item {item_id} at {location}. "
            f"On-hand: {existing.pack_qty}, requested: {-delta}",
            details={
                "item_id": item_id,
                "location": location,
                "unit_cost_cents": unit_cost_cents,
                "on_hand": existing.pack_qty,
                "requested_quantity": -delta,
            },
        )

    if delta <= 0:
        raise EntryNotFound(
            f"No stock entry for item {item_id} at {location} with unit cost {unit_cost_cents}",
            details={"item_id": item_id, "location": location, "unit_cost_cents": unit_cost_cents},
        )

    try:
        with db.session.begin_nested():
            entry = LedgerEntry(
                item_id=item_id,
                location=location,
                unit_cost_cents=unit_cost_cents,
                pack_qty=delta,
                pill_qty=0,
                last_updated=now,
            )
            db.session.add(entry)
        return entry
    except IntegrityError:
        # Another writer created the lot after our UPDATE missed it
        db.session.execute(stmt)
        return _find_entry(item_id, location, unit_cost_cents)


def get_entry(item_id: int, location: str, unit_cost_cents: int) -> LedgerEntry:
    location = normalize_location(location)
    entry = _find_entry(item_id, location, unit_cost_cents)
    if entry is None:
        raise EntryNotFound(
            f"No stock entry for item {item_id} at {location} with unit cost {unit_cost_cents}",
            details={"item_id": item_id, "location": location, "unit_cost_cents": unit_cost_cents},
        )
    return entry


def list_lots(item_id: int, location: str) -> list[LedgerEntry]:
    """Cost lots of one item at one location, oldest first."""
    location = normalize_location(location)
    return (
        db.session.query(LedgerEntry)
        .filter_by(item_id=item_id, location=location)
        .order_by(LedgerEntry.created_at.asc(), LedgerEntry.id.asc())
        .all()
    )


def entry_row(entry: LedgerEntry, item: Item) -> dict:
    return {
        **entry.to_dict(),
        "name": item.name,
        "weight": item.weight,
        "pack_size": item.pack_size,
        "value_cents": entry.pack_qty * entry.unit_cost_cents,
    }


def list_by_location(location: str) -> list[dict]:
    """All ledger entries at a location joined with item metadata, by item name."""
    location = normalize_location(location)
    rows = (
        db.session.query(LedgerEntry, Item)
        .join(Item, Item.id == LedgerEntry.item_id)
        .filter(LedgerEntry.location == location)
        .order_by(Item.name.asc(), Item.weight.asc(), LedgerEntry.unit_cost_cents.asc())
        .all()
    )
    return [entry_row(entry, item) for entry, item in rows]


def location_valuation(location: str) -> dict:
    """Stock value at a location: sum of pack_qty * unit_cost_cents."""
    rows = list_by_location(location)
    return {
        "location": normalize_location(location),
        "total_packs": sum(row["pack_qty"] for row in rows),
        "total_value_cents": sum(row["value_cents"] for row in rows),
        "entries": rows,
    }


def _adjust_stock_inner(
    *,
    item_id: int,
    location: str,
    unit_cost_cents: int,
    counted_qty: int,
    counted_pills: int | None = None,
    reason: str | None = None,
) -> StockAdjustment:
    """Core count-adjustment logic without retry or commit."""
    if counted_qty < 0:
        raise ValidationError("counted_qty must be >= 0")
    if counted_pills is not None and counted_pills < 0:
        raise ValidationError("counted_pills must be >= 0")

    entry = _find_entry(item_id, location, unit_cost_cents, lock=True)
    if entry is None:
        raise EntryNotFound(
            f"No stock entry for item {item_id} at {location} with unit cost {unit_cost_cents}",
            details={"item_id": item_id, "location": location, "unit_cost_cents": unit_cost_cents},
        )

    adjustment = StockAdjustment(
        item_id=item_id,
        location=location,
        unit_cost_cents=unit_cost_cents,
        previous_qty=entry.pack_qty,
        counted_qty=counted_qty,
        reason=reason,
    )
    db.session.add(adjustment)

    # Applied as a delta so it goes through the same conditional update
    upsert_quantity(item_id, location, unit_cost_cents, counted_qty - entry.pack_qty)
    if counted_pills is not None:
        entry.pill_qty = counted_pills

    db.session.flush()
    return adjustment


def adjust_stock(
    *,
    item_id: int,
    location: str,
    unit_cost_cents: int,
    counted_qty: int,
    counted_pills: int | None = None,
    reason: str | None = None,
) -> StockAdjustment:
    """
    Set a lot to a physically counted pack quantity.

    Records a StockAdjustment with the previous figure in the same
    transaction. Raises EntryNotFound for an unknown lot.
    """
    location = normalize_location(location)

    def _op():
        return _adjust_stock_inner(
            item_id=item_id,
            location=location,
            unit_cost_cents=unit_cost_cents,
            counted_qty=counted_qty,
            counted_pills=counted_pills,
            reason=reason,
        )

    adjustment = run_in_transaction(_op)
    logger.info(
        "Stock adjusted: item=%s location=%s cost=%s %s -> %s",
        item_id, location, unit_cost_cents, adjustment.previous_qty, adjustment.counted_qty,
    )
    return adjustment
