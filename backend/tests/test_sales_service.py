"""
Sale tests: shelf decrements, cost capture, all-or-nothing recording and
idempotent replays.
"""

import pytest

from medistock.models import Sale, SaleLine, MAIN_STORE, POINT_OF_SALE
from medistock.services import sales_service
from medistock.services.errors import (
    IdempotencyConflict,
    InsufficientStock,
    ItemNotFound,
    SaleNotFound,
)
from medistock.services.sales_service import SaleLineRequest
from medistock.validation import ValidationError
from tests.conftest import packs_at, put_stock


class TestRecordSale:

    def test_sale_decrements_shelf(self, db_session, stocked_shelf):
        sale = sales_service.record_sale([
            {"item_id": stocked_shelf.id, "quantity": 4, "unit_sell_price_cents": 1500},
        ])

        assert sale.total_cents == 6000
        assert len(sale.lines) == 1
        assert sale.lines[0].unit_cost_cents == 1000
        assert sale.lines[0].line_total_cents == 6000
        assert packs_at(stocked_shelf, POINT_OF_SALE, 1000) == 6

    def test_sale_never_touches_other_locations(self, db_session, stocked_shelf):
        put_stock(db_session, stocked_shelf, MAIN_STORE, 1000, 50)

        sales_service.record_sale([SaleLineRequest(stocked_shelf.id, 10, 1500)])

        assert packs_at(stocked_shelf, MAIN_STORE, 1000) == 50
        assert packs_at(stocked_shelf, POINT_OF_SALE, 1000) == 0

    def test_explicit_cost_lot(self, db_session, stocked_shelf):
        put_stock(db_session, stocked_shelf, POINT_OF_SALE, 1200, 5)

        sale = sales_service.record_sale([
            SaleLineRequest(stocked_shelf.id, 2, 1500, unit_cost_cents=1200),
        ])

        assert sale.lines[0].unit_cost_cents == 1200
        assert packs_at(stocked_shelf, POINT_OF_SALE, 1000) == 10
        assert packs_at(stocked_shelf, POINT_OF_SALE, 1200) == 3

    def test_oldest_lot_that_covers_the_line(self, db_session, stocked_shelf):
        put_stock(db_session, stocked_shelf, POINT_OF_SALE, 1200, 20)

        sale = sales_service.record_sale([SaleLineRequest(stocked_shelf.id, 15, 1500)])

        # The 1000 lot only holds 10, so the whole line comes off the 1200 lot
        assert sale.lines[0].unit_cost_cents == 1200
        assert packs_at(stocked_shelf, POINT_OF_SALE, 1000) == 10
        assert packs_at(stocked_shelf, POINT_OF_SALE, 1200) == 5

    def test_lines_on_same_lot_are_checked_together(self, db_session, stocked_shelf):
        with pytest.raises(InsufficientStock):
            sales_service.record_sale([
                SaleLineRequest(stocked_shelf.id, 6, 1500),
                SaleLineRequest(stocked_shelf.id, 6, 1400),
            ])

        assert packs_at(stocked_shelf, POINT_OF_SALE, 1000) == 10

    def test_multi_line_sale(self, db_session, stocked_shelf, ibuprofen):
        put_stock(db_session, ibuprofen, POINT_OF_SALE, 300, 8)

        sale = sales_service.record_sale([
            SaleLineRequest(stocked_shelf.id, 1, 1500),
            SaleLineRequest(ibuprofen.id, 3, 500),
        ])

        assert sale.total_cents == 1500 + 1500
        assert [line.item_id for line in sale.lines] == [stocked_shelf.id, ibuprofen.id]
        assert packs_at(ibuprofen, POINT_OF_SALE, 300) == 5

    def test_insufficient_line_rejects_whole_sale(self, db_session, stocked_shelf, ibuprofen):
        put_stock(db_session, ibuprofen, POINT_OF_SALE, 300, 2)

        with pytest.raises(InsufficientStock) as exc:
            sales_service.record_sale([
                SaleLineRequest(stocked_shelf.id, 3, 1500),
                SaleLineRequest(ibuprofen.id, 5, 500),
            ])

        assert exc.value.details["items"][0]["item_id"] == ibuprofen.id
        assert packs_at(stocked_shelf, POINT_OF_SALE, 1000) == 10
        assert packs_at(ibuprofen, POINT_OF_SALE, 300) == 2
        assert db_session.query(Sale).count() == 0
        assert db_session.query(SaleLine).count() == 0

    def test_item_without_shelf_stock(self, db_session, paracetamol):
        put_stock(db_session, paracetamol, MAIN_STORE, 1000, 50)

        with pytest.raises(InsufficientStock):
            sales_service.record_sale([SaleLineRequest(paracetamol.id, 1, 1500)])

    def test_unknown_item(self, db_session):
        with pytest.raises(ItemNotFound):
            sales_service.record_sale([SaleLineRequest(987654, 1, 1500)])

    @pytest.mark.parametrize("lines", [
        [],
        [{"item_id": 1, "quantity": 0, "unit_sell_price_cents": 100}],
        [{"item_id": 1, "quantity": 2}],
        [{"item_id": 1, "quantity": 1.5, "unit_sell_price_cents": 100}],
        [{"item_id": 1, "quantity": 1, "unit_sell_price_cents": -1}],
        ["not a line"],
    ])
    def test_malformed_lines(self, db_session, lines):
        with pytest.raises(ValidationError):
            sales_service.record_sale(lines)


class TestSaleIdempotency:

    def test_replay_returns_original_sale(self, db_session, stocked_shelf):
        lines = [{"item_id": stocked_shelf.id, "quantity": 3, "unit_sell_price_cents": 1500}]

        first = sales_service.record_sale(lines, idempotency_key="till-1-0001")
        second = sales_service.record_sale(lines, idempotency_key="till-1-0001")

        assert second.id == first.id
        assert db_session.query(Sale).count() == 1
        assert packs_at(stocked_shelf, POINT_OF_SALE, 1000) == 7

    def test_key_reused_for_other_sale(self, db_session, stocked_shelf):
        sales_service.record_sale(
            [SaleLineRequest(stocked_shelf.id, 3, 1500)],
            idempotency_key="till-1-0001",
        )

        with pytest.raises(IdempotencyConflict):
            sales_service.record_sale(
                [SaleLineRequest(stocked_shelf.id, 4, 1500)],
                idempotency_key="till-1-0001",
            )
        assert packs_at(stocked_shelf, POINT_OF_SALE, 1000) == 7

    def test_sales_without_key_are_independent(self, db_session, stocked_shelf):
        sales_service.record_sale([SaleLineRequest(stocked_shelf.id, 3, 1500)])
        sales_service.record_sale([SaleLineRequest(stocked_shelf.id, 3, 1500)])

        assert db_session.query(Sale).count() == 2
        assert packs_at(stocked_shelf, POINT_OF_SALE, 1000) == 4


class TestSaleQueries:

    def test_get_sale(self, db_session, stocked_shelf):
        sale = sales_service.record_sale([SaleLineRequest(stocked_shelf.id, 1, 1500)])
        assert sales_service.get_sale(sale.id).id == sale.id

    def test_get_missing_sale(self, db_session):
        with pytest.raises(SaleNotFound):
            sales_service.get_sale(123456)

    def test_recent_lines_newest_sale_first(self, db_session, stocked_shelf):
        first = sales_service.record_sale([SaleLineRequest(stocked_shelf.id, 1, 1500)])
        second = sales_service.record_sale([SaleLineRequest(stocked_shelf.id, 2, 1500)])

        rows = sales_service.list_recent_sale_lines()
        assert [sale.id for _, sale, _ in rows] == [second.id, first.id]
