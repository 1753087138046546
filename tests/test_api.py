"""API tests through the FastAPI test client."""

from datetime import timedelta
from decimal import Decimal

from shopledger.core.config import local_today


def _money(value) -> Decimal:
    return Decimal(str(value))


def _create_order(client, supplier_id, product_id, second_product_id):
    resp = client.post("/api/v1/purchase-orders", json={
        "supplier_id": supplier_id,
        "expected_delivery_date": (local_today() + timedelta(days=5)).isoformat(),
        "notes": "API order",
        "items": [
            {"product_id": product_id, "quantity_ordered": 10, "unit_price": "5.00"},
            {"product_id": second_product_id, "quantity_ordered": 4, "unit_price": "12.50"},
        ],
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestHealth:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"


class TestPurchaseOrderRoutes:

    def test_create_and_get(self, client, test_supplier, test_product, second_product):
        order = _create_order(client, test_supplier.id, test_product.id, second_product.id)
        assert order["status"] == "draft"
        assert _money(order["total_amount"]) == Decimal("100.00")
        assert order["display_number"] == f"PO-{order['id']:04d}"
        assert len(order["items"]) == 2

        resp = client.get(f"/api/v1/purchase-orders/{order['id']}")
        assert resp.status_code == 200
        assert resp.json()["id"] == order["id"]

        resp = client.get("/api/v1/purchase-orders")
        assert resp.status_code == 200
        assert resp.json()["total"] == 1

    def test_create_with_unknown_product_is_atomic(self, client, test_supplier, test_product):
        resp = client.post("/api/v1/purchase-orders", json={
            "supplier_id": test_supplier.id,
            "items": [
                {"product_id": test_product.id, "quantity_ordered": 1, "unit_price": "1.00"},
                {"product_id": 999, "quantity_ordered": 1, "unit_price": "1.00"},
            ],
        })
        assert resp.status_code == 404
        assert "Product 999 not found" in resp.json()["detail"]
        assert client.get("/api/v1/purchase-orders").json()["total"] == 0

    def test_item_mutations_update_total(self, client, test_supplier, test_product, second_product):
        order = _create_order(client, test_supplier.id, test_product.id, second_product.id)

        resp = client.post(f"/api/v1/purchase-orders/{order['id']}/items", json={
            "product_id": test_product.id, "quantity_ordered": 2, "unit_price": "10.00",
        })
        assert resp.status_code == 201
        item_id = resp.json()["id"]
        assert _money(client.get(f"/api/v1/purchase-orders/{order['id']}").json()["total_amount"]) == Decimal("120.00")

        resp = client.patch(f"/api/v1/purchase-orders/items/{item_id}", json={"quantity_ordered": 1})
        assert resp.status_code == 200
        assert _money(resp.json()["subtotal"]) == Decimal("10.00")
        assert _money(client.get(f"/api/v1/purchase-orders/{order['id']}").json()["total_amount"]) == Decimal("110.00")

        resp = client.delete(f"/api/v1/purchase-orders/items/{item_id}")
        assert resp.status_code == 204
        assert _money(client.get(f"/api/v1/purchase-orders/{order['id']}").json()["total_amount"]) == Decimal("100.00")

    def test_invalid_item_is_400(self, client, test_supplier, test_product, second_product):
        order = _create_order(client, test_supplier.id, test_product.id, second_product.id)
        resp = client.post(f"/api/v1/purchase-orders/{order['id']}/items", json={
            "product_id": test_product.id, "quantity_ordered": 0, "unit_price": "10.00",
        })
        assert resp.status_code == 400
        assert "greater than zero" in resp.json()["detail"]

    def test_receive_inspect_and_stock(self, client, test_supplier, test_product, second_product):
        order = _create_order(client, test_supplier.id, test_product.id, second_product.id)
        first, second = order["items"]

        resp = client.post(f"/api/v1/purchase-orders/{order['id']}/send")
        assert resp.status_code == 200
        assert resp.json()["status"] == "sent"

        resp = client.post(f"/api/v1/purchase-orders/{order['id']}/receive", json={"items": [
            {"item_id": first["id"], "quantity_received": 10},
            {"item_id": second["id"], "quantity_received": 2},
        ]})
        assert resp.status_code == 200
        body = resp.json()
        assert body["fully_received"] is False
        assert body["order"]["status"] == "sent"
        assert _money(body["outstanding"][str(second["id"])]) == Decimal("2")

        resp = client.post(f"/api/v1/purchase-orders/{order['id']}/receive", json={"items": [
            {"item_id": second["id"], "quantity_received": 4},
        ]})
        assert resp.json()["fully_received"] is True
        assert resp.json()["order"]["status"] == "received"

        resp = client.post(f"/api/v1/purchase-orders/items/{first['id']}/quality-control", json={
            "inspector_id": 5, "approved_quantity": 7, "rejected_quantity": 3, "notes": "dented",
        })
        assert resp.status_code == 201
        assert resp.json()["status"] == "partial"

        resp = client.get(f"/api/v1/purchase-orders/items/{first['id']}/quality-control")
        assert resp.json()["total"] == 1

        resp = client.get(f"/api/v1/stock/products/{test_product.id}")
        assert _money(resp.json()["stock_quantity"]) == Decimal("7")

        resp = client.get(f"/api/v1/stock/products/{test_product.id}/movements")
        movements = resp.json()["items"]
        assert len(movements) == 1
        assert _money(movements[0]["quantity_change"]) == Decimal("7")

    def test_over_approval_is_400(self, client, test_supplier, test_product, second_product):
        order = _create_order(client, test_supplier.id, test_product.id, second_product.id)
        item_id = order["items"][0]["id"]
        resp = client.post(f"/api/v1/purchase-orders/items/{item_id}/quality-control", json={
            "inspector_id": 5, "approved_quantity": 1, "rejected_quantity": 0,
        })
        assert resp.status_code == 400

    def test_transition_errors(self, client, test_supplier, test_product, second_product):
        order = _create_order(client, test_supplier.id, test_product.id, second_product.id)
        assert client.post(f"/api/v1/purchase-orders/{order['id']}/cancel").status_code == 200
        resp = client.post(f"/api/v1/purchase-orders/{order['id']}/approve")
        assert resp.status_code == 400
        assert "cancelled" in resp.json()["detail"]

    def test_stale_version_is_409(self, client, test_supplier, test_product, second_product):
        order = _create_order(client, test_supplier.id, test_product.id, second_product.id)
        resp = client.patch(f"/api/v1/purchase-orders/{order['id']}", json={
            "notes": "edited", "expected_version": order["version"],
        })
        assert resp.status_code == 200
        assert resp.json()["notes"] == "edited"

        resp = client.patch(f"/api/v1/purchase-orders/{order['id']}", json={
            "notes": "lost update", "expected_version": order["version"],
        })
        assert resp.status_code == 409

    def test_not_found(self, client):
        assert client.get("/api/v1/purchase-orders/4040").status_code == 404
        assert client.delete("/api/v1/purchase-orders/4040").status_code == 404
        assert client.get("/api/v1/purchase-orders/0").status_code == 422

    def test_delete(self, client, test_supplier, test_product, second_product):
        order = _create_order(client, test_supplier.id, test_product.id, second_product.id)
        assert client.delete(f"/api/v1/purchase-orders/{order['id']}").status_code == 204
        assert client.get(f"/api/v1/purchase-orders/{order['id']}").status_code == 404


class TestPayableRoutes:

    def _create(self, client, total="500.00", days=0, **extra):
        payload = {
            "description": "Supplier invoice",
            "total_amount_due": total,
            "due_date": (local_today() + timedelta(days=days)).isoformat(),
        }
        payload.update(extra)
        resp = client.post("/api/v1/payables", json=payload)
        assert resp.status_code == 201, resp.text
        return resp.json()

    def test_payment_flow(self, client):
        payable = self._create(client)
        assert payable["status"] == "open"

        resp = client.post(f"/api/v1/payables/{payable['id']}/payments", json={"amount": "300"})
        assert resp.status_code == 200
        assert _money(resp.json()["balance_due"]) == Decimal("200")

        resp = client.post(f"/api/v1/payables/{payable['id']}/reversals", json={"amount": "400"})
        assert resp.status_code == 400

        resp = client.post(f"/api/v1/payables/{payable['id']}/payments", json={"amount": "250"})
        assert resp.status_code == 400
        assert "exceeds" in resp.json()["detail"]

        resp = client.post(f"/api/v1/payables/{payable['id']}/payments", json={"amount": "200"})
        assert resp.json()["status"] == "paid"

        resp = client.post(f"/api/v1/payables/{payable['id']}/payments", json={"amount": "1"})
        assert resp.status_code == 400
        assert "already paid" in resp.json()["detail"]

        resp = client.post(f"/api/v1/payables/{payable['id']}/reversals", json={"amount": "50"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "open"

        payments = client.get(f"/api/v1/payables/{payable['id']}/payments").json()["items"]
        assert [_money(p["amount"]) for p in payments] == [Decimal("300"), Decimal("200"), Decimal("-50")]

    def test_mark_overdue_and_summary(self, client):
        self._create(client, total="100", days=-1)
        self._create(client, total="200", days=2)

        resp = client.post("/api/v1/payables/mark-overdue")
        assert resp.json() == {"marked": 1}
        assert client.post("/api/v1/payables/mark-overdue").json() == {"marked": 0}

        resp = client.get("/api/v1/payables", params={"status": "overdue"})
        assert resp.json()["total"] == 1

        summary = client.get("/api/v1/payables/summary").json()
        assert summary["count_open"] == 2
        assert summary["count_overdue"] == 1
        assert _money(summary["total_open"]) == Decimal("300")
        assert len(summary["upcoming"]) == 1

        reminders = client.get("/api/v1/payables/reminders").json()
        assert len(reminders["overdue"]) == 1
        assert len(reminders["due_within_3_days"]) == 1

    def test_update_and_delete(self, client):
        payable = self._create(client)
        resp = client.patch(f"/api/v1/payables/{payable['id']}", json={"total_amount_due": "450"})
        assert resp.status_code == 200
        assert _money(resp.json()["balance_due"]) == Decimal("450")

        resp = client.patch(f"/api/v1/payables/{payable['id']}", json={"status": "paid"})
        assert resp.status_code == 400

        assert client.delete(f"/api/v1/payables/{payable['id']}").status_code == 204
        assert client.get(f"/api/v1/payables/{payable['id']}").status_code == 404

    def test_create_validation(self, client):
        resp = client.post("/api/v1/payables", json={
            "description": "Bad", "total_amount_due": "0", "due_date": local_today().isoformat(),
        })
        assert resp.status_code == 400

    def test_scheduler_status(self, client):
        resp = client.get("/api/v1/payables/scheduler-status")
        assert resp.status_code == 200
        assert "tasks" in resp.json()


class TestDirectoryAndReports:

    def test_suppliers(self, client, test_supplier):
        assert client.get("/api/v1/suppliers").json()["total"] == 1
        resp = client.get("/api/v1/suppliers/search", params={"q": "central"})
        assert [s["id"] for s in resp.json()["items"]] == [test_supplier.id]
        assert client.get(f"/api/v1/suppliers/{test_supplier.id}").json()["name"] == test_supplier.name
        assert client.get("/api/v1/suppliers/999").status_code == 404

    def test_reports(self, client, test_supplier, test_product, second_product):
        _create_order(client, test_supplier.id, test_product.id, second_product.id)
        client.post("/api/v1/payables", json={
            "description": "Invoice", "total_amount_due": "80", "supplier_id": test_supplier.id,
            "due_date": local_today().isoformat(),
        })

        rows = client.get("/api/v1/reports/payables-by-supplier").json()["items"]
        assert rows[0]["supplier_name"] == test_supplier.name
        assert _money(rows[0]["total_open"]) == Decimal("80")

        stats = client.get("/api/v1/reports/purchase-order-stats").json()
        assert stats["total"] == 1
        assert stats["pending"] == 1

        assert client.get("/api/v1/reports/overdue-purchase-orders").json()["total"] == 0
        resp = client.get("/api/v1/reports/supplier-payment-performance")
        assert resp.json()["items"][0]["payables"] == 1
