"""Humo contra un servidor levantado (uvicorn lumina_pos.main:app).

Se salta si LUMINA_POS_BASE no está definido.
"""

import concurrent.futures as cf
import os
import uuid

import pytest
import requests

BASE = os.environ.get("LUMINA_POS_BASE")

pytestmark = pytest.mark.skipif(not BASE, reason="LUMINA_POS_BASE not set")


def _post(path, body, *, headers=None, timeout=10):
    r = requests.post(f"{BASE}{path}", json=body, headers=headers or {}, timeout=timeout)
    try:
        js = r.json()
    except ValueError:
        js = {}
    return r.status_code, js


def _ensure_open_shift():
    r = requests.get(f"{BASE}/session/current", timeout=10)
    if r.json().get("shift") is None:
        st, _ = _post("/session/open", {"opening_float": 0})
        assert st == 200


def test_health():
    r = requests.get(f"{BASE}/health", timeout=10)
    assert r.status_code == 200


def test_concurrent_checkout_same_idempotency_key():
    _ensure_open_shift()
    st, _ = _post("/cart/items", {"product_id": "4", "quantity": 1})
    assert st == 200
    totals = requests.get(f"{BASE}/cart/totals", timeout=10).json()

    key = str(uuid.uuid4())
    body = {"tenders": {"CASH": totals["total"]}}
    with cf.ThreadPoolExecutor(max_workers=4) as ex:
        results = list(
            ex.map(lambda _: _post("/pos/checkout", body, headers={"Idempotency-Key": key}), range(4))
        )

    ok = [js for st, js in results if st == 200]
    assert len(ok) == 4
    assert len({js["transaction"]["id"] for js in ok}) == 1
    assert sum(1 for js in ok if not js["replayed"]) == 1
