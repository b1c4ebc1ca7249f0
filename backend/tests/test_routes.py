"""
HTTP surface tests through the Flask test client.
"""
import pytest

from scalepos.services import checkout_service


class TestSalesRoutes:

    @pytest.mark.smoke
    def test_create_sale(self, client, kg_product, piece_product, make_payload):
        response = client.post("/api/weight-sales/", json=make_payload(
            {"product_id": kg_product.id, "weight": 0.755, "sell_by_weight": True},
            {"product_id": piece_product.id, "quantity": 3},
        ))

        assert response.status_code == 201
        body = response.get_json()
        assert body["summary"] == {
            "total_items": 2,
            "total_weight": 0.755,
            "subtotal": 60.2,
            "tax_amount": 9.63,
            "total_amount": 69.83,
        }
        assert body["sale"]["status"] == "completed"
        assert [item["line_total"] for item in body["items"]] == [30.2, 30.0]
        assert body["low_stock"] == [{"product_id": piece_product.id, "new_stock": 0.0}]
        assert body["loyalty"] is None

    def test_create_sale_with_customer(self, client, kg_product, customer, make_payload):
        response = client.post("/api/weight-sales/", json=make_payload(
            {"product_id": kg_product.id, "weight": 1.5},
            customer_id=customer.id,
        ))

        assert response.status_code == 201
        loyalty = response.get_json()["loyalty"]
        # 60.00 + 16% tax = 69.60
        assert loyalty["ok"] is True
        assert loyalty["points_earned"] == 6
        assert loyalty["loyalty_points"] == 10

    def test_validation_error(self, client, kg_product, make_payload):
        response = client.post("/api/weight-sales/", json=make_payload(
            {"product_id": kg_product.id, "weight": 0},
        ))
        assert response.status_code == 400
        assert response.get_json()["details"]["product_id"] == kg_product.id

    def test_missing_fields(self, client, kg_product):
        response = client.post("/api/weight-sales/", json={"items": [{"product_id": kg_product.id, "weight": 1}]})
        assert response.status_code == 400
        assert set(response.get_json()["details"]["missing"]) == {"cashier_id", "payment_method"}

    def test_unknown_product(self, client, db_session, make_payload):
        response = client.post("/api/weight-sales/", json=make_payload({"product_id": 404}))
        assert response.status_code == 404

    def test_store_failure_is_generic_500(self, client, piece_product, make_payload, monkeypatch):
        from sqlalchemy.exc import OperationalError

        def broken_insert(sale_id, items):
            raise OperationalError("INSERT", {}, Exception("disk full"))

        monkeypatch.setattr(checkout_service, "insert_sale_items", broken_insert)

        response = client.post("/api/weight-sales/", json=make_payload({"product_id": piece_product.id}))
        assert response.status_code == 500
        assert response.get_json() == {"error": "Failed to create sale"}

    def test_list_and_get(self, client, kg_product, make_payload):
        created = client.post("/api/weight-sales/", json=make_payload(
            {"product_id": kg_product.id, "weight": "2"},
        )).get_json()

        listing = client.get("/api/weight-sales/?page=1&limit=5&include_weight=false").get_json()
        assert listing["pagination"]["total"] == 1
        assert listing["sales"][0]["weight_info"]["total_weight"] == 2.0
        assert "weight_items" not in listing["sales"][0]["weight_info"]

        sale_id = created["sale"]["id"]
        detail = client.get(f"/api/weight-sales/{sale_id}")
        assert detail.status_code == 200
        assert detail.get_json()["items"][0]["weight"] == 2.0

        assert client.get(f"/api/weight-sales/{sale_id + 1}").status_code == 404

    def test_bad_pagination(self, client, db_session):
        assert client.get("/api/weight-sales/?page=0").status_code == 400


class TestPricingRoutes:

    def test_gram_quote(self, client, gram_product):
        response = client.post("/api/pricing/quote", json={"product_id": gram_product.id, "weight": 0.012})

        assert response.status_code == 200
        body = response.get_json()
        assert body["validation"] == {"is_valid": True, "message": None}
        assert body["quote"]["total"] == 10.2
        assert body["display"] == {"price": "$850.00/kg", "weight": "12g"}
        assert body["line"]["weight"] == 0.012

    def test_piece_quote(self, client, piece_product):
        body = client.post("/api/pricing/quote", json={"product_id": piece_product.id, "quantity": 3}).get_json()
        assert body["quote"]["total"] == 30.0
        assert body["display"] == {"price": "$10.00 c/u", "weight": None}

    def test_out_of_bounds_weight_is_reported_inline(self, client, gram_product):
        body = client.post("/api/pricing/quote", json={"product_id": gram_product.id, "weight": 6}).get_json()
        assert body["validation"]["is_valid"] is False
        assert "by the gram" in body["validation"]["message"]
        assert body["quote"] is None

    def test_unknown_product(self, client, db_session):
        assert client.post("/api/pricing/quote", json={"product_id": 77, "weight": 1}).status_code == 404


class TestCatalogRoutes:

    def test_create_and_patch_product(self, client, db_session):
        response = client.post("/api/products/", json={
            "sku": "CHEESE",
            "name": "Cheese",
            "unit_price": "180",
            "unit": "kilogram",
            "sell_by_weight": True,
            "stock_quantity": "4.5",
        })
        assert response.status_code == 201
        product = response.get_json()["product"]
        assert product["unit"] == "kg"

        patched = client.patch(f"/api/products/{product['id']}", json={"unit_price": "175.50"})
        assert patched.status_code == 200
        assert patched.get_json()["product"]["unit_price"] == 175.5

        assert client.patch(f"/api/products/{product['id']}", json={"stock_quantity": 10}).status_code == 400

    def test_non_weighed_product_must_be_piece(self, client, db_session):
        response = client.post("/api/products/", json={"name": "Rice", "unit_price": 20, "unit": "kg"})
        assert response.status_code == 400

    def test_restock_adjust_and_movements(self, client, piece_product):
        restock = client.post(f"/api/inventory/{piece_product.id}/restock", json={"quantity": 10, "notes": "Delivery"})
        assert restock.status_code == 201
        assert restock.get_json()["new_stock"] == 12.0

        adjust = client.post(f"/api/inventory/{piece_product.id}/adjust", json={"quantity_delta": -1})
        assert adjust.status_code == 400

        adjust = client.post(
            f"/api/inventory/{piece_product.id}/adjust",
            json={"quantity_delta": -1, "notes": "Broken bottle"},
        )
        assert adjust.status_code == 201
        assert adjust.get_json()["new_stock"] == 11.0

        movements = client.get(f"/api/inventory/{piece_product.id}/movements").get_json()["movements"]
        assert [m["movement_type"] for m in movements] == ["adjustment", "restock"]

    def test_customer_accounts(self, client, db_session):
        created = client.post("/api/customers/", json={"name": "Rosa", "email": "rosa@example.com"})
        assert created.status_code == 201
        customer_id = created.get_json()["customer"]["id"]

        assert client.get(f"/api/customers/{customer_id}").get_json()["customer"]["loyalty_points"] == 0
        assert client.get(f"/api/customers/{customer_id + 1}").status_code == 404


class TestReportAndHealthRoutes:

    def test_weight_report(self, client, kg_product, make_payload):
        client.post("/api/weight-sales/", json=make_payload({"product_id": kg_product.id, "weight": 2}))

        body = client.get("/api/reports/weight-sales").get_json()
        assert body["summary"]["total_weight_sold"] == 2.0
        assert body["summary"]["revenue_per_kg"] == 40.0

    def test_bad_report_range(self, client, db_session):
        response = client.get("/api/reports/weight-sales?start=2026-03-05&end=2026-03-01")
        assert response.status_code == 400

    def test_health(self, client, db_session):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json()["status"] == "healthy"

    def test_cors_header_for_allowed_origin(self, client, db_session):
        response = client.get("/health", headers={"Origin": "http://localhost:5173"})
        assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

        response = client.get("/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in response.headers
