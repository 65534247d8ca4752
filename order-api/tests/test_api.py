from datetime import timedelta

from conftest import NOW
from orderdesk.db.models import OrderStatus

AGENT = {"X-AGENT-KEY": "test-agent-key"}
ADMIN = {"X-ADMIN-KEY": "test-admin-key"}
SLUG = "pizzaria-do-ze"


def place_order(client, catalog, **kw):
    pizza = catalog["pizza"]
    body = {
        "customer_name": "Maria",
        "customer_phone": "(11) 98765-4321",
        "payment_method": "CARD",
        "items": [{
            "product_id": pizza.product_id,
            "option_item_ids": catalog["option_ids"](pizza, "Quatro Queijos", "Catupiry"),
        }],
    }
    body.update(kw)
    return client.post(f"/api/v1/public/{SLUG}/orders", json=body)


class TestPublic:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_menu(self, client, catalog):
        r = client.get(f"/api/v1/public/{SLUG}/menu")
        assert r.status_code == 200
        data = r.json()
        assert data["store_name"] == "Pizzaria do Zé"
        names = [p["name"] for p in data["products"]]
        assert names == sorted(names)
        pizza = next(p for p in data["products"] if p["name"] == "Pizza Grande")
        assert pizza["option_groups"][0]["role"] == "FLAVOR"

    def test_unknown_store(self, client, store):
        assert client.get("/api/v1/public/nope/menu").status_code == 404

    def test_quote(self, client, catalog):
        half = catalog["half"]
        r = client.post(f"/api/v1/public/{SLUG}/pricing/quote", json={
            "product_id": half.product_id,
            "option_item_ids": catalog["option_ids"](half, "Camarão", "Frango", "Cheddar"),
        })
        assert r.status_code == 200
        assert r.json()["unit_price_cents"] == 3500
        assert r.json()["is_valid"] is True

    def test_quote_without_flavor_is_invalid_not_error(self, client, catalog):
        pizza = catalog["pizza"]
        r = client.post(f"/api/v1/public/{SLUG}/pricing/quote", json={"product_id": pizza.product_id})
        assert r.status_code == 200
        assert r.json()["is_valid"] is False
        assert r.json()["has_flavor_selection"] is False

    def test_place_order_and_read_receipt(self, client, catalog):
        r = place_order(client, catalog)
        assert r.status_code == 201
        order = r.json()
        assert order["status"] == "NEW"
        assert order["total_cents"] == 1700

        receipt = client.get(f"/api/v1/public/orders/{order['order_id']}/receipt", params={"token": order["receipt_token"]})
        assert receipt.status_code == 200
        assert "receipt_token" not in receipt.json()

        wrong = client.get(f"/api/v1/public/orders/{order['order_id']}/receipt", params={"token": "x"})
        assert wrong.status_code == 404

    def test_place_order_rejects_missing_flavor(self, client, catalog):
        pizza = catalog["pizza"]
        r = place_order(client, catalog, items=[{"product_id": pizza.product_id}])
        assert r.status_code == 400

    def test_place_order_validation(self, client, catalog):
        r = place_order(client, catalog, payment_method="CARD", change_for_cents=1000)
        assert r.status_code == 422

    def test_client_order_id_retry_returns_same_order(self, client, catalog):
        first = place_order(client, catalog, client_order_id="retry-1").json()
        second = place_order(client, catalog, client_order_id="retry-1").json()
        assert first["order_id"] == second["order_id"]


class TestAgent:
    def test_requires_agent_key(self, client, store):
        assert client.get(f"/api/v1/agent/{SLUG}/orders").status_code == 401
        assert client.get(f"/api/v1/agent/{SLUG}/orders", headers=ADMIN).status_code == 401

    def test_claim_print_and_notify(self, client, catalog, gateway):
        order_id = place_order(client, catalog).json()["order_id"]

        listed = client.get(f"/api/v1/agent/{SLUG}/orders", headers=AGENT).json()
        assert [o["order_id"] for o in listed] == [order_id]

        first = client.post(f"/api/v1/agent/orders/{order_id}/claim", headers=AGENT).json()
        second = client.post(f"/api/v1/agent/orders/{order_id}/claim", headers=AGENT).json()
        assert first["outcome"] == "CLAIMED"
        assert second["outcome"] == "ALREADY_CLAIMED"

        printed = client.post(f"/api/v1/agent/orders/{order_id}/printed", headers=AGENT).json()
        assert printed["outcome"] == "PRINTED"
        assert printed["notification"] == "sent"
        assert len(gateway.sent) == 1

        again = client.post(f"/api/v1/agent/orders/{order_id}/printed", headers=AGENT).json()
        assert again["outcome"] == "ALREADY_PRINTED"
        assert again["notification"] is None
        assert len(gateway.sent) == 1

    def test_printed_before_claim_conflicts(self, client, make_order):
        order = make_order()
        r = client.post(f"/api/v1/agent/orders/{order.order_id}/printed", headers=AGENT)
        assert r.status_code == 409

    def test_claim_unknown_order(self, client, store):
        assert client.post("/api/v1/agent/orders/424242/claim", headers=AGENT).status_code == 404

    def test_claim_next_batch(self, client, make_order):
        older = make_order(created_at=NOW - timedelta(seconds=20))
        newer = make_order(created_at=NOW - timedelta(seconds=10))

        r = client.post(f"/api/v1/agent/{SLUG}/orders/claim", headers=AGENT, json={"limit": 5})

        assert r.status_code == 200
        assert [o["order_id"] for o in r.json()["orders"]] == [older.order_id, newer.order_id]
        assert all(o["status"] == "PRINTING" for o in r.json()["orders"])

    def test_print_jobs(self, client, make_order):
        order = make_order(status=OrderStatus.PRINTED)

        created = client.post(
            f"/api/v1/agent/{SLUG}/print-jobs",
            headers=AGENT,
            json={"job_type": "KITCHEN_ORDER", "order_id": order.order_id},
        )
        assert created.status_code == 201
        job_id = created.json()["print_job_id"]

        queued = client.get(f"/api/v1/agent/{SLUG}/print-jobs", headers=AGENT).json()
        assert [j["print_job_id"] for j in queued] == [job_id]

        failed = client.post(f"/api/v1/agent/print-jobs/{job_id}/failed", headers=AGENT, json={"error": "no paper"})
        assert failed.json()["status"] == "FAILED"
        assert failed.json()["error"] == "no paper"

        conflict = client.post(f"/api/v1/agent/print-jobs/{job_id}/printed", headers=AGENT)
        assert conflict.status_code == 409

    def test_print_job_needs_table_ref(self, client, store):
        r = client.post(
            f"/api/v1/agent/{SLUG}/print-jobs", headers=AGENT, json={"job_type": "CASHIER_TABLE_SUMMARY"}
        )
        assert r.status_code == 422


class TestJobs:
    def test_requires_admin_key(self, client):
        assert client.post("/api/v1/jobs/recover-stuck-orders").status_code == 401
        assert client.post("/api/v1/jobs/recover-stuck-orders", headers=AGENT).status_code == 401

    def test_recover(self, client, make_order):
        make_order(created_at=NOW - timedelta(minutes=5))
        r = client.post("/api/v1/jobs/recover-stuck-orders", headers=ADMIN)
        assert r.status_code == 200
        assert r.json()["recovered_orders"] == 1
        assert r.json()["threshold_minutes"] == 1

    def test_notify(self, client, make_order, gateway):
        make_order(status=OrderStatus.PRINTED)
        r = client.post("/api/v1/jobs/notify-printed-orders", headers=ADMIN)
        assert r.json()["found"] == 1
        assert r.json()["sent"] == 1

    def test_notify_without_gateway(self, client):
        from orderdesk.api.deps import get_gateway
        from orderdesk.main import app

        app.dependency_overrides[get_gateway] = lambda: None
        r = client.post("/api/v1/jobs/notify-printed-orders", headers=ADMIN)
        assert r.status_code == 503

    def test_purge(self, client, make_order):
        make_order(status=OrderStatus.PRINTED, created_at=NOW - timedelta(days=8))
        r = client.post("/api/v1/jobs/purge-old-orders", headers=ADMIN)
        assert r.json()["deleted_orders"] == 1
        assert r.json()["retention_days"] == 7
