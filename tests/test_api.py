import asyncio
import json
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from lumina_pos.core.schemas import TaxConfig
from lumina_pos.main import create_app
from lumina_pos.seed_demo import seed
from lumina_pos.services.inventory import InventoryIssueLog
from lumina_pos.store import MemoryStore
from lumina_pos.terminal import Terminal


@pytest.fixture
def terminal(clock, ids, tmp_path):
    store = MemoryStore()
    asyncio.run(seed(store))
    return Terminal(
        store,
        TaxConfig(rate=Decimal("0.18"), prices_include_tax=True),
        clock=clock,
        new_id=ids,
        issue_log=InventoryIssueLog(tmp_path / "inventory_issues.jsonl"),
    )


@pytest.fixture
def client(terminal):
    return TestClient(create_app(terminal))


def _open(client, amount=100):
    r = client.post("/session/open", json={"opening_float": amount})
    assert r.status_code == 200, r.text
    return r.json()["shift"]


def test_checkout_flow(client):
    _open(client)
    # 2 x Polo talla S a 25.00 con IGV incluido, menos 10.00 de descuento
    r = client.post("/cart/items", json={"product_id": "6", "variant_id": "6-S", "quantity": 2})
    assert r.status_code == 200
    r = client.post(
        "/cart/items/discount", json={"product_id": "6", "variant_id": "6-S", "discount": 5}
    )
    assert r.json()["totals"] == {"subtotal": 43.9, "discount": 10.0, "tax": 6.1, "total": 40.0}

    r = client.post("/pos/checkout", json={"tenders": {"CASH": 50}})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["replayed"] is False
    assert body["change"] == 10.0
    tx = body["transaction"]
    assert tx["total"] == 40.0
    assert tx["payment_method"] == "CASH"
    assert tx["payments"] == [{"method": "CASH", "amount": 40.0}]
    assert body["inventory"] == {"ok": True, "pending": False, "warnings": []}
    assert body["cart"]["items"] == []

    products = {p["id"]: p for p in client.get("/products").json()}
    sizes = {v["id"]: v["stock"] for v in products["6"]["variants"]}
    assert sizes["6-S"] == 6
    assert products["6"]["stock"] == 23


def test_inclusive_scenario_totals(client):
    _open(client)
    client.post("/cart/items", json={"product_id": "1", "quantity": 2})  # 7.00
    client.post("/cart/items", json={"product_id": "5", "quantity": 5})  # 22.50
    client.post("/cart/items", json={"product_id": "4"})  # 2.00 → 31.50
    r = client.post("/pos/checkout", json={"tenders": {"CARD": 31.5}})
    tx = r.json()["transaction"]
    assert (tx["subtotal"], tx["tax"], tx["total"]) == (26.69, 4.81, 31.5)
    assert tx["payment_method"] == "CARD"


def test_checkout_without_shift(client):
    client.post("/cart/items", json={"product_id": "1"})
    r = client.post("/pos/checkout", json={"tenders": {"CASH": 10}})
    assert r.status_code == 409
    assert r.json()["detail"] == "NO_ACTIVE_SHIFT"
    # el carrito sigue intacto
    assert len(client.get("/cart").json()["items"]) == 1


def test_checkout_insufficient_payment(client):
    _open(client)
    client.post("/cart/items", json={"product_id": "1", "quantity": 2})
    r = client.post("/pos/checkout", json={"tenders": {"CASH": 5, "WALLET": 1}})
    assert r.status_code == 422
    assert r.json()["detail"] == "INSUFFICIENT_PAYMENT"
    assert r.json()["remaining"] == 1.0
    assert client.get("/pos/transactions").json() == []


def test_checkout_card_overpayment_is_settled(client):
    _open(client)
    client.post("/cart/items", json={"product_id": "1"})
    r = client.post("/pos/checkout", json={"tenders": {"CARD": 10}})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["change"] == 0.0
    assert body["transaction"]["payments"] == [{"method": "CARD", "amount": 3.5}]
    assert body["transaction"]["total"] == 3.5


def test_empty_cart_and_negative_tender(client):
    _open(client)
    r = client.post("/pos/checkout", json={"tenders": {"CASH": 0}})
    assert r.status_code == 422
    assert r.json()["detail"] == "EMPTY_CART"
    r = client.post("/pos/checkout", json={"tenders": {"CASH": -1}})
    assert r.status_code == 422


def test_idempotency_key_replays_checkout(client):
    _open(client)
    client.post("/cart/items", json={"product_id": "2", "quantity": 2})
    headers = {"Idempotency-Key": "abc-123"}
    first = client.post("/pos/checkout", json={"tenders": {"CASH": 5}}, headers=headers)
    second = client.post("/pos/checkout", json={"tenders": {"CASH": 5}}, headers=headers)
    assert first.status_code == second.status_code == 200
    assert second.headers.get("Idempotent-Replay") == "true"
    assert second.json()["replayed"] is True
    assert second.json()["transaction"]["id"] == first.json()["transaction"]["id"]
    assert len(client.get("/pos/transactions").json()) == 1


def test_close_reports_variance(client):
    shift = _open(client, 100)
    client.post("/session/movement", json={"type": "CASH_IN", "amount": 20, "reason": "sencillo"})
    client.post("/session/movement", json={"type": "CASH_OUT", "amount": 5, "reason": "taxi"})
    client.post("/cart/items", json={"product_id": "3", "quantity": 10})  # 12.00
    client.post("/pos/checkout", json={"tenders": {"CASH": 20}})

    current = client.get("/session/current").json()
    assert current["reconciliation"]["expected_cash"] == 127.0

    r = client.post("/session/close", json={"counted_amount": 125})
    assert r.status_code == 200
    recon = r.json()["reconciliation"]
    assert recon["cash_sales"] == 12.0
    assert recon["expected_cash"] == 127.0
    assert recon["variance"] == -2.0
    assert r.json()["shift"]["status"] == "CLOSED"

    report = client.get(f"/session/{shift['id']}/report").json()
    types = [m["type"] for m in report["movements"]]
    assert types == ["OPEN", "CASH_IN", "CASH_OUT", "CLOSE"]
    assert report["reconciliation"]["variance"] == -2.0

    assert client.post("/session/close", json={"counted_amount": 0}).status_code == 409


def test_second_open_is_conflict(client):
    _open(client)
    r = client.post("/session/open", json={"opening_float": 0})
    assert r.status_code == 409
    assert r.json()["detail"] == "CONFLICT"


def test_external_order_flow(client):
    r = client.post("/pos/orders", json={"items": [{"product_id": "4", "quantity": 3}]})
    assert r.status_code == 200
    order = r.json()
    assert order["status"] == "PENDING"
    assert client.post(f"/pos/orders/{order['id']}/import").status_code == 409

    _open(client)
    assert [o["id"] for o in client.get("/pos/orders/pending").json()] == [order["id"]]
    r = client.post(f"/pos/orders/{order['id']}/import")
    assert r.json()["pending_order_id"] == order["id"]

    r = client.post("/pos/checkout", json={"tenders": {"WALLET": 6}})
    assert r.status_code == 200
    tx = r.json()["transaction"]
    assert tx["id"] == order["id"]
    assert tx["status"] == "SETTLED"
    assert tx["origin"] == "ONLINE"
    assert client.get("/pos/orders/pending").json() == []


def test_summary_and_low_stock(client):
    _open(client)
    client.post("/cart/items", json={"product_id": "5", "quantity": 4})
    client.post("/pos/checkout", json={"tenders": {"CASH": 18}})

    low = [p["id"] for p in client.get("/products/low-stock").json()]
    assert low == ["5"]
    assert "3" in [p["id"] for p in client.get("/products/low-stock?threshold=16").json()]

    s = client.get("/reports/summary").json()
    assert s["transaction_count"] == 1
    assert s["total_sales"] == 18.0
    assert s["by_payment_tag"] == {"CASH": 18.0}
    assert s["low_stock_count"] == 1


def test_inventory_warning_is_logged(client, tmp_path):
    _open(client)
    client.post("/cart/items", json={"product_id": "6", "variant_id": "6-L", "quantity": 7})
    r = client.post("/pos/checkout", json={"tenders": {"CARD": 189}})
    assert r.status_code == 200
    inv = r.json()["inventory"]
    assert inv["ok"] is True
    assert inv["warnings"] and inv["warnings"][0].startswith("NEGATIVE_STOCK")

    lines = (tmp_path / "inventory_issues.jsonl").read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[-1])["kind"] == "NEGATIVE_STOCK"
