"""
Sales Service - point-of-sale transactions

WHY: A sale takes packs off the Point-of-Sale shelf. The header, its lines
and the shelf decrements are one DB transaction: a sale is either fully
recorded with its stock removed, or not recorded at all.

COST CAPTURE:
Each line records the unit cost of the Point-of-Sale lot it consumed, so
profit reporting does not depend on later intake prices. A line may name
its lot (unit_cost_cents); otherwise the oldest lot of that item that can
cover the whole line is used.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..extensions import db
from ..models import Item, LedgerEntry, Sale, SaleLine, POINT_OF_SALE
from medistock.validation import ValidationError, check_price_cents, coerce_int
from .concurrency import lock_for_update, run_in_transaction
from .errors import IdempotencyConflict, InsufficientStock, ItemNotFound, SaleNotFound
from .ledger_service import upsert_quantity


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaleLineRequest:
    item_id: int
    quantity: int
    unit_sell_price_cents: int
    # Point-of-Sale cost lot to sell from; None lets the service pick one
    unit_cost_cents: int | None = None

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_sell_price_cents


def _normalize_lines(lines) -> list[SaleLineRequest]:
    if not lines:
        raise ValidationError("A sale needs at least one line")

    normalized = []
    for i, raw in enumerate(lines, start=1):
        if isinstance(raw, SaleLineRequest):
            line = raw
        elif isinstance(raw, dict):
            try:
                cost = raw.get("unit_cost_cents")
                line = SaleLineRequest(
                    item_id=coerce_int("item_id", raw["item_id"]),
                    quantity=coerce_int("quantity", raw["quantity"]),
                    unit_sell_price_cents=coerce_int("unit_sell_price_cents", raw["unit_sell_price_cents"]),
                    unit_cost_cents=coerce_int("unit_cost_cents", cost) if cost is not None else None,
                )
            except KeyError as e:
                raise ValidationError(f"Line {i}: missing required field: {e.args[0]}")
        else:
            raise ValidationError(f"Line {i}: expected an object")

        if line.quantity <= 0:
            raise ValidationError(f"Line {i}: quantity must be > 0")
        check_price_cents("unit_sell_price_cents", line.unit_sell_price_cents)
        check_price_cents("unit_cost_cents", line.unit_cost_cents)
        normalized.append(line)
    return normalized


def _ensure_items_exist(lines: list[SaleLineRequest]) -> None:
    wanted = {line.item_id for line in lines}
    found = {
        item_id for (item_id,) in
        db.session.query(Item.id).filter(Item.id.in_(wanted)).all()
    }
    missing = sorted(wanted - found)
    if missing:
        raise ItemNotFound(f"Item(s) not found: {missing}", details={"item_ids": missing})


def _shelf_lots(item_id: int) -> list[LedgerEntry]:
    query = db.session.query(LedgerEntry).filter_by(
        item_id=item_id,
        location=POINT_OF_SALE,
    ).order_by(LedgerEntry.created_at.asc(), LedgerEntry.id.asc()).populate_existing()
    return lock_for_update(query).all()


def _allocate_lots(lines: list[SaleLineRequest]) -> list[SaleLineRequest]:
    """
    Assign every line to a Point-of-Sale cost lot that can cover it.

    Lines hitting the same lot are checked against its combined quantity.
    Every short line is collected before failing so the whole sale is
    rejected with one InsufficientStock listing them all.
    """
    remaining: dict[tuple[int, int], int] = {}
    lots_by_item: dict[int, list[int]] = {}
    allocated = []
    shortfalls = []

    for line in lines:
        if line.item_id not in lots_by_item:
            lots = _shelf_lots(line.item_id)
            lots_by_item[line.item_id] = [lot.unit_cost_cents for lot in lots]
            for lot in lots:
                remaining[(lot.item_id, lot.unit_cost_cents)] = lot.pack_qty

        if line.unit_cost_cents is not None:
            candidates = [line.unit_cost_cents]
        else:
            candidates = lots_by_item[line.item_id]

        chosen = next(
            (cost for cost in candidates if remaining.get((line.item_id, cost), 0) >= line.quantity),
            None,
        )
        if chosen is None:
            shortfalls.append({
                "item_id": line.item_id,
                "unit_cost_cents": line.unit_cost_cents,
                "requested_quantity": line.quantity,
                "on_hand": max((remaining.get((line.item_id, c), 0) for c in candidates), default=0),
            })
            continue

        remaining[(line.item_id, chosen)] -= line.quantity
        allocated.append(SaleLineRequest(
            item_id=line.item_id,
            quantity=line.quantity,
            unit_sell_price_cents=line.unit_sell_price_cents,
            unit_cost_cents=chosen,
        ))

    if shortfalls:
        raise InsufficientStock(
            "Insufficient stock to record sale",
            details={"items": shortfalls},
        )
    return allocated


def _check_replay(sale: Sale, lines: list[SaleLineRequest]) -> Sale:
    recorded = [
        (line.item_id, line.quantity, line.unit_sell_price_cents, line.unit_cost_cents)
        for line in sale.lines
    ]
    matches = len(recorded) == len(lines) and all(
        (item_id, qty, price) == (req.item_id, req.quantity, req.unit_sell_price_cents)
        and (req.unit_cost_cents is None or req.unit_cost_cents == cost)
        for (item_id, qty, price, cost), req in zip(recorded, lines)
    )
    if not matches:
        raise IdempotencyConflict(
            "Idempotency key already used for a different sale",
            details={"sale_id": sale.id},
        )
    return sale


def _record_sale_inner(lines: list[SaleLineRequest], idempotency_key: str | None) -> tuple[Sale, bool]:
    """Core sale logic without retry or commit. Returns (sale, replayed)."""
    if idempotency_key:
        existing = db.session.query(Sale).filter_by(idempotency_key=idempotency_key).first()
        if existing is not None:
            return _check_replay(existing, lines), True

    _ensure_items_exist(lines)
    allocated = _allocate_lots(lines)

    sale = Sale(
        total_cents=sum(line.line_total_cents for line in allocated),
        idempotency_key=idempotency_key,
    )
    db.session.add(sale)
    db.session.flush()

    for line in allocated:
        db.session.add(SaleLine(
            sale_id=sale.id,
            item_id=line.item_id,
            quantity=line.quantity,
            unit_sell_price_cents=line.unit_sell_price_cents,
            unit_cost_cents=line.unit_cost_cents,
            line_total_cents=line.line_total_cents,
        ))
    db.session.flush()

    for line in allocated:
        upsert_quantity(line.item_id, POINT_OF_SALE, line.unit_cost_cents, -line.quantity)

    return sale, False


def record_sale(lines, idempotency_key: str | None = None) -> Sale:
    """
    Record a sale and take its packs off the Point-of-Sale shelf.

    Args:
        lines: SaleLineRequest objects or dicts with item_id, quantity,
            unit_sell_price_cents and optional unit_cost_cents
        idempotency_key: optional client key; a replay returns the sale
            already recorded under it without touching stock again

    Raises:
        ValidationError: malformed lines
        ItemNotFound: unknown item_id
        InsufficientStock: any line exceeds shelf stock (nothing is written)
        IdempotencyConflict: key reused for a different set of lines
    """
    normalized = _normalize_lines(lines)

    sale, replayed = run_in_transaction(lambda: _record_sale_inner(normalized, idempotency_key))
    if replayed:
        logger.info("Sale replay for key %s returned sale %s", idempotency_key, sale.id)
    else:
        logger.info("Sale %s recorded: %d line(s), total=%s", sale.id, len(normalized), sale.total_cents)
    return sale


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise SaleNotFound(f"Sale {sale_id} not found")
    return sale


def list_recent_sale_lines(limit: int | None = None) -> list[tuple[SaleLine, Sale, Item]]:
    """Sale lines with their header and item, most recent sale first."""
    q = (
        db.session.query(SaleLine, Sale, Item)
        .join(Sale, Sale.id == SaleLine.sale_id)
        .join(Item, Item.id == SaleLine.item_id)
        .order_by(Sale.created_at.desc(), Sale.id.desc(), SaleLine.id.asc())
    )
    if limit is not None:
        q = q.limit(limit)
    return q.all()
