# Overview: Service-layer operations for purchase intake; item resolution, intake register and stock-in.

from __future__ import annotations

import logging
from datetime import date

from ..extensions import db
from ..models import Item, IntakeRecord
from ..models.catalog import normalize_key
from medistock.time_utils import today
from medistock.validation import ValidationError, check_price_cents, normalize_location
from .concurrency import run_in_transaction
from .errors import ItemAmbiguous, ItemNotFound
from .ledger_service import upsert_quantity


logger = logging.getLogger(__name__)


def find_items(name: str, weight: str | None = None) -> list[Item]:
    return (
        db.session.query(Item)
        .filter_by(name_key=normalize_key(name), weight_key=normalize_key(weight))
        .order_by(Item.id.asc())
        .all()
    )


def resolve_item(
    name: str,
    weight: str | None = None,
    pack_size: int | None = None,
    *,
    create: bool = True,
) -> Item:
    """
    Find the catalog item for (name, weight), creating it when absent.

    Raises:
        ItemNotFound: no match and create=False
        ItemAmbiguous: more than one catalog row matches
    """
    if not name or not name.strip():
        raise ValidationError("name cannot be blank")

    matches = find_items(name, weight)
    if len(matches) > 1:
        raise ItemAmbiguous(
            f"{len(matches)} items match name={name!r} weight={weight!r}",
            details={"item_ids": [item.id for item in matches]},
        )
    if matches:
        return matches[0]

    if not create:
        raise ItemNotFound(
            f"No item with name={name!r} weight={weight!r}",
            details={"name": name, "weight": weight},
        )

    if pack_size is not None and pack_size <= 0:
        raise ValidationError("pack_size must be > 0")

    item = Item(
        name=" ".join(name.split()),
        weight=(weight or "").strip(),
        pack_size=pack_size,
        name_key=normalize_key(name),
        weight_key=normalize_key(weight),
    )
    db.session.add(item)
    db.session.flush()
    logger.info("Created catalog item %s (%s %s)", item.id, item.name, item.weight)
    return item


def _record_intake_inner(
    *,
    intake_date: date,
    destination: str,
    name: str,
    weight: str | None,
    pack_size: int | None,
    pack_qty: int,
    free_packs: int,
    buy_price_cents: int,
    retail_price_cents: int | None,
) -> IntakeRecord:
    """Core intake logic without retry or commit."""
    item = resolve_item(name, weight, pack_size)

    record = IntakeRecord(
        intake_date=intake_date,
        destination=destination,
        item_id=item.id,
        pack_qty=pack_qty,
        free_packs=free_packs,
        buy_price_cents=buy_price_cents,
        retail_price_cents=retail_price_cents,
    )
    db.session.add(record)
    db.session.flush()

    upsert_quantity(item.id, destination, buy_price_cents, pack_qty + free_packs)
    return record


def record_intake(
    *,
    destination: str,
    name: str,
    weight: str | None = None,
    pack_size: int | None = None,
    pack_qty: int,
    free_packs: int = 0,
    buy_price_cents: int,
    retail_price_cents: int | None = None,
    intake_date: date | None = None,
) -> IntakeRecord:
    """
    Record a purchase and put the packs into stock at the destination.

    The item lookup/creation, the intake register row and the ledger
    increment (pack_qty + free_packs at buy_price_cents) are one
    transaction: either all three are written or none is.
    """
    destination = normalize_location(destination)
    if pack_qty < 0:
        raise ValidationError("pack_qty must be >= 0")
    if free_packs < 0:
        raise ValidationError("free_packs must be >= 0")
    if pack_qty + free_packs <= 0:
        raise ValidationError("intake must bring in at least one pack")
    check_price_cents("buy_price_cents", buy_price_cents)
    check_price_cents("retail_price_cents", retail_price_cents)

    def _op():
        return _record_intake_inner(
            intake_date=intake_date or today(),
            destination=destination,
            name=name,
            weight=weight,
            pack_size=pack_size,
            pack_qty=pack_qty,
            free_packs=free_packs,
            buy_price_cents=buy_price_cents,
            retail_price_cents=retail_price_cents,
        )

    record = run_in_transaction(_op)
    logger.info(
        "Intake recorded: id=%s item=%s destination=%s packs=%s+%s buy=%s",
        record.id, record.item_id, destination, pack_qty, free_packs, buy_price_cents,
    )
    return record


def list_intakes(limit: int | None = None) -> list[tuple[IntakeRecord, Item]]:
    """Intake register, most recent first (intake_date desc, id desc)."""
    q = (
        db.session.query(IntakeRecord, Item)
        .join(Item, Item.id == IntakeRecord.item_id)
        .order_by(IntakeRecord.intake_date.desc(), IntakeRecord.id.desc())
    )
    if limit is not None:
        q = q.limit(limit)
    return q.all()


def latest_buy_prices(item_ids=None) -> dict[int, int]:
    """
    Map item_id -> buy price of its most recent intake.

    Most recent is intake_date desc, then id desc for same-day records.
    """
    q = db.session.query(
        IntakeRecord.item_id,
        IntakeRecord.buy_price_cents,
    ).order_by(IntakeRecord.intake_date.desc(), IntakeRecord.id.desc())
    if item_ids is not None:
        item_ids = list(item_ids)
        if not item_ids:
            return {}
        q = q.filter(IntakeRecord.item_id.in_(item_ids))

    prices: dict[int, int] = {}
    for item_id, buy_price_cents in q.all():
        prices.setdefault(item_id, buy_price_cents)
    return prices
