"""
HTTP API tests through the Flask test client.

Covers status codes, typed error bodies, idempotency headers and CSV export.
"""

from medistock.models import MAIN_STORE, PHARMACY, POINT_OF_SALE


def _intake(client, **overrides):
    body = {
        "date": "2026-05-01",
        "destination": "Main Store",
        "name": "Paracetamol",
        "weight": "500mg",
        "pack_size": 10,
        "pack_qty": 100,
        "buy_price_cents": 1000,
    }
    body.update(overrides)
    return client.post("/api/intake", json=body)


# =============================================================================
# System
# =============================================================================

class TestSystemEndpoints:

    def test_health(self, client, db_session):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json["checks"]["database"]["status"] == "healthy"

    def test_health_counts_lots_per_location(self, client, db_session):
        _intake(client)
        _intake(client, destination=PHARMACY)

        database = client.get("/health").json["checks"]["database"]
        assert database["items"] == 1
        assert database["ledger_entries"] == {MAIN_STORE: 1, PHARMACY: 1}


# =============================================================================
# Intake, items, stock
# =============================================================================

class TestIntakeApi:

    def test_record_intake(self, client, db_session):
        response = _intake(client)

        assert response.status_code == 201
        assert response.json["item"]["name"] == "Paracetamol"
        assert response.json["intake"]["destination"] == MAIN_STORE
        assert response.json["intake"]["intake_date"] == "2026-05-01"

        stock = client.get("/api/stock/MAIN_STORE").json
        assert stock["total_packs"] == 100
        assert stock["entries"][0]["unit_cost_cents"] == 1000

    def test_missing_field(self, client, db_session):
        response = client.post("/api/intake", json={"destination": MAIN_STORE, "name": "X"})
        assert response.status_code == 400
        assert "pack_qty" in response.json["error"]

    def test_decimal_price_rejected(self, client, db_session):
        response = _intake(client, buy_price_cents=10.5)
        assert response.status_code == 400

    def test_unknown_destination(self, client, db_session):
        response = _intake(client, destination="Garage")
        assert response.status_code == 400

    def test_numeric_weight_is_kept_as_text(self, client, db_session):
        response = _intake(client, weight=500)

        assert response.status_code == 201
        assert response.json["item"]["weight"] == "500"

    def test_structured_weight_rejected(self, client, db_session):
        response = _intake(client, weight={"mg": 500})
        assert response.status_code == 400
        assert "weight" in response.json["error"]

    def test_bad_date(self, client, db_session):
        response = _intake(client, date="01/05/2026")
        assert response.status_code == 400

    def test_list_intake_and_items(self, client, db_session):
        _intake(client)
        _intake(client, name="Ibuprofen", weight="200mg")

        intakes = client.get("/api/intake?limit=1").json["intakes"]
        assert len(intakes) == 1

        items = client.get("/api/items?q=ibu").json["items"]
        assert [item["name"] for item in items] == ["Ibuprofen"]


class TestStockApi:

    def test_unknown_location(self, client, db_session):
        response = client.get("/api/stock/GARAGE")
        assert response.status_code == 400

    def test_adjust(self, client, db_session):
        item_id = _intake(client).json["item"]["id"]

        response = client.post("/api/stock/adjust", json={
            "item_id": item_id,
            "location": MAIN_STORE,
            "unit_cost_cents": 1000,
            "counted_qty": 97,
            "reason": "breakage",
        })

        assert response.status_code == 200
        assert response.json["adjustment"]["quantity_delta"] == -3

    def test_adjust_unknown_lot(self, client, db_session):
        item_id = _intake(client).json["item"]["id"]

        response = client.post("/api/stock/adjust", json={
            "item_id": item_id,
            "location": PHARMACY,
            "unit_cost_cents": 1000,
            "counted_qty": 1,
        })

        assert response.status_code == 404
        assert response.json["error_type"] == "EntryNotFound"


# =============================================================================
# Transfers and sales
# =============================================================================

class TestTransferApi:

    def test_transfer_and_replay(self, client, db_session):
        item_id = _intake(client).json["item"]["id"]
        body = {
            "item_id": item_id,
            "unit_cost_cents": 1000,
            "from_location": "Main Store",
            "to_location": "Point of Sale",
            "quantity": 10,
        }

        first = client.post("/api/transfers", json=body, headers={"Idempotency-Key": "t-1"})
        second = client.post("/api/transfers", json=body, headers={"Idempotency-Key": "t-1"})

        assert first.status_code == 201
        assert second.status_code == 201
        assert second.json["transfer"]["id"] == first.json["transfer"]["id"]

        stock = client.get("/api/stock/POINT_OF_SALE").json
        assert stock["total_packs"] == 10
        assert len(client.get("/api/transfers").json["transfers"]) == 1

    def test_insufficient_stock(self, client, db_session):
        item_id = _intake(client).json["item"]["id"]

        response = client.post("/api/transfers", json={
            "item_id": item_id,
            "unit_cost_cents": 1000,
            "from_location": MAIN_STORE,
            "to_location": PHARMACY,
            "quantity": 101,
        })

        assert response.status_code == 409
        assert response.json["error_type"] == "InsufficientStock"
        assert response.json["details"]["on_hand"] == 100

    def test_same_location(self, client, db_session):
        item_id = _intake(client).json["item"]["id"]

        response = client.post("/api/transfers", json={
            "item_id": item_id,
            "unit_cost_cents": 1000,
            "from_location": MAIN_STORE,
            "to_location": "main_store",
            "quantity": 1,
        })
        assert response.status_code == 400


class TestSalesApi:

    def _shelf(self, client):
        item_id = _intake(client, destination="POS", pack_qty=10).json["item"]["id"]
        return item_id

    def test_record_and_get_sale(self, client, db_session):
        item_id = self._shelf(client)

        response = client.post("/api/sales", json={
            "lines": [{"item_id": item_id, "quantity": 2, "unit_sell_price_cents": 1500}],
        })

        assert response.status_code == 201
        sale_id = response.json["sale"]["id"]
        assert response.json["lines"][0]["unit_cost_cents"] == 1000

        fetched = client.get(f"/api/sales/{sale_id}")
        assert fetched.status_code == 200
        assert fetched.json["sale"]["total_cents"] == 3000

    def test_single_line_body(self, client, db_session):
        item_id = self._shelf(client)

        response = client.post("/api/sales", json={
            "item_id": item_id, "quantity": 1, "unit_sell_price_cents": 1500,
        })
        assert response.status_code == 201

    def test_replay_with_header(self, client, db_session):
        item_id = self._shelf(client)
        body = {"lines": [{"item_id": item_id, "quantity": 4, "unit_sell_price_cents": 1500}]}

        first = client.post("/api/sales", json=body, headers={"Idempotency-Key": "s-1"})
        second = client.post("/api/sales", json=body, headers={"Idempotency-Key": "s-1"})

        assert second.json["sale"]["id"] == first.json["sale"]["id"]
        assert client.get("/api/stock/POINT_OF_SALE").json["total_packs"] == 6

    def test_conflicting_replay(self, client, db_session):
        item_id = self._shelf(client)
        client.post("/api/sales", json={
            "lines": [{"item_id": item_id, "quantity": 1, "unit_sell_price_cents": 1500}],
        }, headers={"Idempotency-Key": "s-1"})

        response = client.post("/api/sales", json={
            "lines": [{"item_id": item_id, "quantity": 2, "unit_sell_price_cents": 1500}],
        }, headers={"Idempotency-Key": "s-1"})

        assert response.status_code == 409
        assert response.json["error_type"] == "IdempotencyConflict"

    def test_insufficient_stock(self, client, db_session):
        item_id = self._shelf(client)

        response = client.post("/api/sales", json={
            "lines": [{"item_id": item_id, "quantity": 11, "unit_sell_price_cents": 1500}],
        })

        assert response.status_code == 409
        assert client.get("/api/stock/POINT_OF_SALE").json["total_packs"] == 10

    def test_missing_sale(self, client, db_session):
        assert client.get("/api/sales/999999").status_code == 404

    def test_lines_not_a_list(self, client, db_session):
        response = client.post("/api/sales", json={"lines": "two aspirin"})
        assert response.status_code == 400

    def test_oversized_idempotency_key(self, client, db_session):
        item_id = self._shelf(client)

        response = client.post("/api/sales", json={
            "lines": [{"item_id": item_id, "quantity": 1, "unit_sell_price_cents": 1500}],
        }, headers={"Idempotency-Key": "k" * 129})
        assert response.status_code == 400


# =============================================================================
# Reports
# =============================================================================

class TestReportsApi:

    def test_metrics_and_low_stock(self, client, db_session):
        item_id = _intake(client, destination=POINT_OF_SALE, pack_qty=10).json["item"]["id"]
        client.post("/api/sales", json={
            "lines": [{"item_id": item_id, "quantity": 5, "unit_sell_price_cents": 800}],
        })

        metrics = client.get("/api/reports/metrics").json
        assert metrics["revenue_cents"] == 4000
        assert metrics["profit_cents"] == -1000

        low = client.get("/api/reports/low-stock?location=POINT_OF_SALE&min_packs=20").json
        assert low["critical_count"] == 1

        by_day = client.get("/api/reports/sales-by-period?group_by=day").json
        assert len(by_day["rows"]) == 1

    def test_bad_report_arguments(self, client, db_session):
        assert client.get("/api/reports/metrics?start=yesterday").status_code == 400
        assert client.get("/api/reports/sales-by-period?group_by=week").status_code == 400

    def test_valuation(self, client, db_session):
        _intake(client)
        valuation = client.get("/api/reports/valuation/main-store").json
        assert valuation["total_value_cents"] == 100 * 1000

    def test_csv_export(self, client, db_session):
        _intake(client)

        response = client.get("/api/reports/intake?format=csv")

        assert response.status_code == 200
        assert response.mimetype == "text/csv"
        assert "Inventory_Report_" in response.headers["Content-Disposition"]
        assert response.get_data(as_text=True).startswith("Date,Medicine Name")

        sales_csv = client.get("/api/reports/sales?format=csv")
        assert "Sales_Report_" in sales_csv.headers["Content-Disposition"]

    def test_dashboard(self, client, db_session):
        _intake(client)
        dashboard = client.get("/api/reports/dashboard").json
        assert dashboard["locations"][MAIN_STORE]["total_packs"] == 100

    def test_cors_for_local_frontend(self, client, db_session):
        response = client.get("/api/items", headers={"Origin": "http://localhost:3000"})
        assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"
