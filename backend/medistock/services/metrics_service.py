# Overview: Revenue and profit figures derived from recorded sale lines.

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Mapping

from ..extensions import db
from ..models import Sale, SaleLine
from medistock.time_utils import parse_iso_datetime, to_utc_z
from medistock.validation import ValidationError
from .intake_service import latest_buy_prices
"""
Profit accounting rules (authoritative)

- revenue = sum(quantity * unit_sell_price_cents) over sale lines. It never
  depends on cost data.
- Unit cost per line: the cost recorded on the line when present and
  non-zero; else the buy price of the item's most recent intake; else 0.
- profit = sum(quantity * (unit_sell_price_cents - unit_cost)). Not clamped:
  selling below cost gives negative profit.
- All amounts are integer cents in a single currency.
"""


@dataclass(frozen=True)
class LineFigures:
    item_id: int
    quantity: int
    unit_sell_price_cents: int
    unit_cost_cents: int | None


def resolve_unit_cost(line_cost_cents: int | None, fallback_cost_cents: int | None) -> int:
    """Cost fallback chain: line cost (if non-zero) -> latest intake price -> 0."""
    if line_cost_cents:
        return line_cost_cents
    if fallback_cost_cents:
        return fallback_cost_cents
    return 0


def summarize_lines(lines: Iterable[LineFigures], latest_costs: Mapping[int, int]) -> dict:
    revenue = 0
    cost = 0
    items_sold = 0
    for line in lines:
        unit_cost = resolve_unit_cost(line.unit_cost_cents, latest_costs.get(line.item_id))
        revenue += line.quantity * line.unit_sell_price_cents
        cost += line.quantity * unit_cost
        items_sold += line.quantity
    return {
        "revenue_cents": revenue,
        "cost_cents": cost,
        "profit_cents": revenue - cost,
        "items_sold": items_sold,
    }


def _parse_bound(value) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"Invalid datetime: {value!r}")


def _is_whole_day(value) -> bool:
    if isinstance(value, datetime):
        return False
    if isinstance(value, date):
        return True
    try:
        date.fromisoformat(str(value).strip())
    except ValueError:
        return False
    return True


def _end_limit(value) -> datetime | None:
    """
    Exclusive upper limit for an inclusive end bound.

    A date covers that whole day, a time with no fraction covers that whole
    second (sale timestamps are reported to the second).
    """
    end = _parse_bound(value)
    if end is None:
        return None
    if _is_whole_day(value):
        return end + timedelta(days=1)
    if end.microsecond:
        return end + timedelta(microseconds=1)
    return end + timedelta(seconds=1)


def _report_end(limit: datetime | None) -> str | None:
    # Last whole second the bound covers
    if limit is None:
        return None
    return to_utc_z(limit - timedelta(microseconds=1))


def _line_rows(start: datetime | None, end_before: datetime | None):
    q = db.session.query(
        SaleLine.item_id,
        SaleLine.quantity,
        SaleLine.unit_sell_price_cents,
        SaleLine.unit_cost_cents,
        Sale.id.label("sale_id"),
        Sale.created_at.label("sold_at"),
    ).join(Sale, Sale.id == SaleLine.sale_id)

    if start is not None:
        q = q.filter(Sale.created_at >= start)
    if end_before is not None:
        q = q.filter(Sale.created_at < end_before)
    return q.order_by(Sale.created_at.asc(), SaleLine.id.asc()).all()


def _fallback_costs(rows) -> dict[int, int]:
    needs_fallback = {row.item_id for row in rows if not row.unit_cost_cents}
    return latest_buy_prices(needs_fallback)


def compute_metrics(start=None, end=None) -> dict:
    """
    Revenue and profit over sales created in [start, end] (inclusive).

    Either bound may be omitted; both omitted covers every sale. A date-only
    end ("2026-01-31") covers that whole day.
    """
    start_dt = _parse_bound(start)
    end_before = _end_limit(end)

    rows = _line_rows(start_dt, end_before)
    figures = summarize_lines(
        (LineFigures(r.item_id, r.quantity, r.unit_sell_price_cents, r.unit_cost_cents) for r in rows),
        _fallback_costs(rows),
    )
    return {
        **figures,
        "sale_count": len({row.sale_id for row in rows}),
        "start": to_utc_z(start_dt),
        "end": _report_end(end_before),
    }


_PERIOD_FORMATS = {
    "day": "%Y-%m-%d",
    "month": "%Y-%m",
}


def sales_by_period(group_by: str = "day", start=None, end=None) -> dict:
    """Revenue, profit and items sold per day or month (analytics chart)."""
    if group_by not in _PERIOD_FORMATS:
        raise ValidationError("group_by must be day or month")
    fmt = _PERIOD_FORMATS[group_by]

    start_dt = _parse_bound(start)
    end_before = _end_limit(end)
    rows = _line_rows(start_dt, end_before)
    latest_costs = _fallback_costs(rows)

    buckets: OrderedDict[str, list[LineFigures]] = OrderedDict()
    sales: dict[str, set[int]] = {}
    for row in rows:
        period = row.sold_at.strftime(fmt)
        buckets.setdefault(period, []).append(
            LineFigures(row.item_id, row.quantity, row.unit_sell_price_cents, row.unit_cost_cents)
        )
        sales.setdefault(period, set()).add(row.sale_id)

    return {
        "group_by": group_by,
        "start": to_utc_z(start_dt),
        "end": _report_end(end_before),
        "rows": [
            {
                "period": period,
                "sale_count": len(sales[period]),
                **summarize_lines(lines, latest_costs),
            }
            for period, lines in buckets.items()
        ],
    }
