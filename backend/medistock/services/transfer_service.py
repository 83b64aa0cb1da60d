# backend/medistock/services/transfer_service.py
"""
Stock transfer service.

WHY: Move packs of one cost lot between Main Store, Pharmacy and the
Point-of-Sale shelf. The source decrement, the destination increment and
the StockTransfer record are written in one DB transaction, so a failed
transfer leaves both locations exactly as they were.

IDEMPOTENCY:
A client may send an idempotency key. A replay with the same key and the
same arguments returns the transfer already applied; the same key with
different arguments is rejected.
"""
from __future__ import annotations

import logging

from medistock.extensions import db
from medistock.models import StockTransfer
from medistock.validation import ValidationError, normalize_location
from medistock.services.concurrency import run_in_transaction
from medistock.services.errors import IdempotencyConflict, InsufficientStock
from medistock.services.ledger_service import get_entry, upsert_quantity


logger = logging.getLogger(__name__)


def _find_by_key(idempotency_key: str | None) -> StockTransfer | None:
    if not idempotency_key:
        return None
    return db.session.query(StockTransfer).filter_by(idempotency_key=idempotency_key).first()


def _check_replay(existing: StockTransfer, **request) -> StockTransfer:
    original = {
        "item_id": existing.item_id,
        "unit_cost_cents": existing.unit_cost_cents,
        "from_location": existing.from_location,
        "to_location": existing.to_location,
        "quantity": existing.quantity,
    }
    if original != request:
        raise IdempotencyConflict(
            "Idempotency key already used for a different transfer",
            details={"transfer_id": existing.id},
        )
    return existing


def _transfer_inner(
    *,
    item_id: int,
    unit_cost_cents: int,
    from_location: str,
    to_location: str,
    quantity: int,
    idempotency_key: str | None = None,
) -> tuple[StockTransfer, bool]:
    """Core transfer logic without retry or commit. Returns (transfer, replayed)."""
    existing = _find_by_key(idempotency_key)
    if existing is not None:
        return _check_replay(
            existing,
            item_id=item_id,
            unit_cost_cents=unit_cost_cents,
            from_location=from_location,
            to_location=to_location,
            quantity=quantity,
        ), True

    source = get_entry(item_id, from_location, unit_cost_cents)
    if source.pack_qty < quantity:
        raise InsufficientStock(
            f"Insufficient stock for item {item_id} at {from_location}. "
            f"On-hand: {source.pack_qty}, requested: {quantity}",
            details={
                "item_id": item_id,
                "location": from_location,
                "unit_cost_cents": unit_cost_cents,
                "on_hand": source.pack_qty,
                "requested_quantity": quantity,
            },
        )

    # The conditional update re-checks on-hand at write time
    upsert_quantity(item_id, from_location, unit_cost_cents, -quantity)
    upsert_quantity(item_id, to_location, unit_cost_cents, quantity)

    record = StockTransfer(
        item_id=item_id,
        unit_cost_cents=unit_cost_cents,
        from_location=from_location,
        to_location=to_location,
        quantity=quantity,
        idempotency_key=idempotency_key,
    )
    db.session.add(record)
    db.session.flush()
    return record, False


def transfer(
    *,
    item_id: int,
    unit_cost_cents: int,
    from_location: str,
    to_location: str,
    quantity: int,
    idempotency_key: str | None = None,
) -> StockTransfer:
    """
    Move quantity packs of a cost lot from one location to another.

    Raises:
        ValidationError: quantity <= 0 or same source and destination
        EntryNotFound: no source lot
        InsufficientStock: source lot holds fewer than quantity packs
        IdempotencyConflict: key reused with different arguments
    """
    from_location = normalize_location(from_location)
    to_location = normalize_location(to_location)
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")
    if from_location == to_location:
        raise ValidationError("Cannot transfer to the same location")

    def _op():
        return _transfer_inner(
            item_id=item_id,
            unit_cost_cents=unit_cost_cents,
            from_location=from_location,
            to_location=to_location,
            quantity=quantity,
            idempotency_key=idempotency_key,
        )

    record, replayed = run_in_transaction(_op)
    if replayed:
        logger.info("Transfer replay for key %s returned transfer %s", idempotency_key, record.id)
    else:
        logger.info(
            "Transfer %s applied: item=%s cost=%s %s -> %s qty=%s",
            record.id, item_id, unit_cost_cents, from_location, to_location, quantity,
        )
    return record


def list_transfers(limit: int | None = None) -> list[StockTransfer]:
    q = db.session.query(StockTransfer).order_by(StockTransfer.created_at.desc(), StockTransfer.id.desc())
    if limit is not None:
        q = q.limit(limit)
    return q.all()
