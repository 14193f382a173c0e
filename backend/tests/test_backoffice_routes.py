"""
Back-office route tests (catalog, inventory, finance, sales history, health).
"""

from spa_pos.models import FinanceRecord


# =============================================================================
# PRODUCTS
# =============================================================================


class TestProductRoutes:

    def test_create_update_delete(self, client, admin_headers):
        resp = client.post("/api/products", headers=admin_headers, json={
            "name": "Vitamin C Serum",
            "category": "Serums",
            "cost_price_cents": 2100,
            "sell_price_cents": 5600,
            "stock_quantity": 6,
        })
        assert resp.status_code == 201
        product_id = resp.json["id"]
        assert resp.json["stock_quantity"] == 6
        assert resp.json["for_sale"] is True

        resp = client.put(f"/api/products/{product_id}", headers=admin_headers, json={"sell_price_cents": 5900})
        assert resp.status_code == 200
        assert resp.json["sell_price_cents"] == 5900

        resp = client.delete(f"/api/products/{product_id}", headers=admin_headers)
        assert resp.status_code == 200
        assert client.get(f"/api/products/{product_id}", headers=admin_headers).status_code == 404

    def test_stock_not_editable_after_create(self, client, admin_headers, serum):
        resp = client.put(f"/api/products/{serum.id}", headers=admin_headers, json={"stock_quantity": 99})
        assert resp.status_code == 400
        assert "stock_quantity" in resp.json["error"]

    def test_create_validation(self, client, admin_headers):
        resp = client.post("/api/products", headers=admin_headers, json={"name": "No Prices"})
        assert resp.status_code == 400

        resp = client.post("/api/products", headers=admin_headers, json={
            "name": "Float Price",
            "cost_price_cents": 10.5,
            "sell_price_cents": 2000,
        })
        assert resp.status_code == 400

        resp = client.post("/api/products", headers=admin_headers, json={
            "name": "Negative",
            "cost_price_cents": -1,
            "sell_price_cents": 2000,
        })
        assert resp.status_code == 400

    def test_list_filters(self, client, staff_headers, serum, cleanser, back_bar):
        resp = client.get("/api/products?for_sale=true", headers=staff_headers)
        assert {p["name"] for p in resp.json["items"]} == {"Hydrating Serum", "Gentle Foam Cleanser"}

        resp = client.get("/api/products?search=foam", headers=staff_headers)
        assert [p["name"] for p in resp.json["items"]] == ["Gentle Foam Cleanser"]

        resp = client.get("/api/products?page=1&per_page=2", headers=staff_headers)
        assert resp.json["count"] == 2
        assert resp.json["pagination"]["total"] == 3

        resp = client.get("/api/products/categories", headers=staff_headers)
        assert resp.json["categories"] == ["Back Bar", "Cleansers", "Serums"]


# =============================================================================
# SERVICES
# =============================================================================


class TestServiceCatalogRoutes:

    def test_duplicate_name_conflicts(self, client, admin_headers, facial):
        resp = client.post("/api/service-catalog", headers=admin_headers, json={
            "name": "signature facial",
            "price_cents": 8000,
        })
        assert resp.status_code == 409

    def test_delete_unused_service(self, client, admin_headers):
        resp = client.post("/api/service-catalog", headers=admin_headers, json={
            "name": "Brow Wax",
            "price_cents": 2200,
        })
        assert resp.status_code == 201

        resp = client.delete(f"/api/service-catalog/{resp.json['id']}", headers=admin_headers)
        assert resp.json == {"ok": True, "outcome": "deleted"}

    def test_service_with_history_is_deactivated(self, client, admin_headers, facial):
        resp = client.post("/api/finance/income", headers=admin_headers, json={
            "customer_name": "Ana",
            "service_ids": [facial.id],
        })
        assert resp.status_code == 201

        resp = client.delete(f"/api/service-catalog/{facial.id}", headers=admin_headers)
        assert resp.json["outcome"] == "deactivated"

        resp = client.get("/api/service-catalog?include_inactive=false", headers=admin_headers)
        assert resp.json["count"] == 0

        record = client.get("/api/finance/records?type=income", headers=admin_headers).json["items"][0]
        assert record["service_name"] == "Signature Facial"


# =============================================================================
# INVENTORY
# =============================================================================


class TestInventoryRoutes:

    def test_restock_and_adjust(self, client, admin_headers, serum):
        resp = client.post("/api/inventory/restock", headers=admin_headers, json={
            "product_id": serum.id,
            "quantity": 4,
        })
        assert resp.status_code == 201
        assert resp.json["transaction"]["price_cents"] == 7200

        resp = client.post("/api/inventory/adjust", headers=admin_headers, json={
            "product_id": serum.id,
            "new_quantity": 14,
        })
        assert resp.status_code == 200
        assert resp.json["transaction"] is None

        resp = client.get("/api/inventory/transactions?type=restock", headers=admin_headers)
        assert resp.json["count"] == 1

    def test_unknown_product(self, client, admin_headers):
        resp = client.post("/api/inventory/restock", headers=admin_headers, json={
            "product_id": 4040,
            "quantity": 1,
        })
        assert resp.status_code == 404

    def test_bulk_restock_requires_list(self, client, admin_headers):
        resp = client.post("/api/inventory/bulk-restock", headers=admin_headers, json={"updates": "all"})
        assert resp.status_code == 400

    def test_bulk_restock_details(self, client, admin_headers, serum, cleanser):
        resp = client.post("/api/inventory/bulk-restock", headers=admin_headers, json={
            "updates": [
                {"product_id": serum.id, "new_quantity": 13},
                {"product_id": cleanser.id, "new_quantity": 4},
            ],
        })
        assert resp.status_code == 201
        parent = resp.json["transaction"]
        assert parent["price_cents"] == 3 * 1800 + 900

        details = client.get(f"/api/inventory/restocks/{parent['id']}", headers=admin_headers).json
        assert details["count"] == 2
        assert {i["product_id"]: i["quantity"] for i in details["items"]} == {serum.id: 3, cleanser.id: 1}

        assert client.get("/api/inventory/restocks/4040", headers=admin_headers).status_code == 404

        resp = client.get("/api/inventory/transactions?type=restock&include_children=true", headers=admin_headers)
        assert resp.json["count"] == 3

    def test_overview_and_low_stock(self, client, admin_headers, serum, cleanser):
        overview = client.get("/api/inventory/overview", headers=admin_headers).json
        assert overview["total_inventory_value_cents"] == 10 * 1800 + 3 * 900
        assert overview["low_stock_count"] == 1


# =============================================================================
# FINANCE
# =============================================================================


class TestFinanceRoutes:

    def test_expense_lifecycle(self, client, admin_headers, db_session):
        resp = client.post("/api/finance/expenses", headers=admin_headers, json={
            "amount_cents": 4500,
            "vendor": "Beauty Supply Co",
            "category": "Supplies",
            "date": "2025-03-01",
        })
        assert resp.status_code == 201
        record_id = resp.json["id"]
        assert resp.json["date"] == "2025-03-01T00:00:00Z"

        resp = client.get(f"/api/finance/records/{record_id}", headers=admin_headers)
        assert resp.json["vendor"] == "Beauty Supply Co"

        resp = client.delete(f"/api/finance/records/{record_id}", headers=admin_headers)
        assert resp.status_code == 200
        assert db_session.get(FinanceRecord, record_id) is None

    def test_expense_validation(self, client, admin_headers):
        resp = client.post("/api/finance/expenses", headers=admin_headers, json={
            "amount_cents": 4500,
            "vendor": "Beauty Supply Co",
            "category": "Parties",
        })
        assert resp.status_code == 400

        resp = client.post("/api/finance/expenses", headers=admin_headers, json={
            "amount_cents": "45.00",
            "vendor": "Beauty Supply Co",
            "category": "Supplies",
        })
        assert resp.status_code == 400

    def test_income_requires_service_list(self, client, admin_headers):
        resp = client.post("/api/finance/income", headers=admin_headers, json={
            "customer_name": "Ana",
            "service_ids": 1,
        })
        assert resp.status_code == 400

    def test_summary(self, client, admin_headers, facial, massage):
        client.post("/api/finance/income", headers=admin_headers, json={
            "customer_name": "Ana",
            "service_ids": [facial.id, massage.id],
            "discount_cents": 1000,
            "tip_cents": 500,
        })
        client.post("/api/finance/expenses", headers=admin_headers, json={
            "amount_cents": 2000,
            "vendor": "Power Co",
            "category": "Utilities",
        })

        summary = client.get("/api/finance/summary", headers=admin_headers).json
        assert summary["total_income_cents"] == 11500
        assert summary["total_expenses_cents"] == 2000
        assert summary["net_profit_cents"] == 9500
        assert summary["top_vendor"] == "Power Co"


# =============================================================================
# SALES HISTORY
# =============================================================================


class TestSalesRoutes:

    def test_list_and_delete(self, client, staff_headers, admin_headers, serum):
        sale = client.post("/api/sales", headers=staff_headers, json={
            "product_id": serum.id,
            "quantity": 2,
            "payment_method": "cash",
        }).json

        listing = client.get("/api/sales", headers=staff_headers).json
        assert [s["id"] for s in listing["items"]] == [sale["id"]]

        assert client.get(f"/api/sales/{sale['id']}", headers=staff_headers).json["total_cents"] == 9600

        resp = client.delete(f"/api/sales/{sale['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert client.delete(f"/api/sales/{sale['id']}", headers=admin_headers).status_code == 404

    def test_single_sale_rejects_bad_quantity(self, client, staff_headers, serum):
        resp = client.post("/api/sales", headers=staff_headers, json={"product_id": serum.id, "quantity": 0})
        assert resp.status_code == 400


# =============================================================================
# SYSTEM
# =============================================================================


class TestSystemRoutes:

    def test_health_degraded_without_admin(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "degraded"
        assert resp.json["checks"]["auth_service"]["status"] == "degraded"

    def test_health_with_admin(self, client, admin_user):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"
        assert resp.json["checks"]["database"]["details"]["users"] == 1

    def test_version(self, client, db_session):
        resp = client.get("/version")
        assert resp.json["api_version"] == "1.0.0"
        assert resp.json["display_timezone"] == "America/New_York"
