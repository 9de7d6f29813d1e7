# tests/test_orders_api.py
from app.routers import cron
from tests.conftest import ADMIN_PHONE, CUSTOMER_PHONE

API = "/api/v1"

CHECKOUT = {
    "customer_name": "Budi",
    "customer_email": "Budi@Example.com",
    "customer_phone": CUSTOMER_PHONE,
    "product_id": "prod-ml-001",
    "product_name": "Mobile Legends Mythic Account",
    "product_price": 150000,
    "quantity": 2,
}


def _checkout(client) -> dict:
    res = client.post(f"{API}/orders/checkout", json=CHECKOUT)
    assert res.status_code == 200, res.text
    return res.json()


def test_health(client):
    assert client.get("/").json()["status"] == "ok"


def test_checkout_creates_pending_order(client):
    order = _checkout(client)

    assert order["status"] == "PENDING"
    assert order["payment_status"] == "WAITING"
    assert order["total_amount"] == 300000
    assert order["customer_email"] == "budi@example.com"
    assert order["order_number"].startswith("ZG-20261019-")
    assert order["account_email"] is None


def test_checkout_validates_payload(client):
    bad = dict(CHECKOUT, product_price=0)
    assert client.post(f"{API}/orders/checkout", json=bad).status_code == 422

    bad = dict(CHECKOUT, customer_name="   ")
    assert client.post(f"{API}/orders/checkout", json=bad).status_code == 422

    bad = dict(CHECKOUT, total_amount=1)
    assert client.post(f"{API}/orders/checkout", json=bad).status_code == 422


def test_unknown_order_is_404(client):
    assert client.get(f"{API}/orders/ZG-00000000-XXXXXX").status_code == 404


def test_full_purchase_flow(client, admin_headers, gateway):
    order = _checkout(client)
    number = order["order_number"]

    page = client.get(f"{API}/orders/{order['id']}/payment").json()
    assert {m["method"] for m in page["payment_methods"]} == {"qris", "va", "gopay"}
    assert page["order"]["order_number"] == number

    res = client.post(f"{API}/orders/{number}/payment-method", json={"payment_method": "va"})
    assert res.status_code == 200
    assert res.json()["payment_method"] == "va"

    res = client.post(f"{API}/orders/{number}/confirm-payment")
    assert res.status_code == 200
    assert res.json()["status"] == "PROCESSING"
    assert len(gateway.messages_to(ADMIN_PHONE)) == 1

    res = client.post(
        f"{API}/orders/{number}/deliver",
        json={"account_email": "user@x.com", "account_password": "pw123"},
        headers=admin_headers,
    )
    assert res.status_code == 200
    assert res.json()["status"] == "COMPLETED"

    status_view = client.get(f"{API}/orders/{number}").json()
    assert status_view["status"] == "COMPLETED"
    assert status_view["payment_status"] == "SUCCESS"
    assert status_view["account_email"] == "user@x.com"
    assert status_view["account_password"] == "pw123"
    assert any("pw123" in m for m in gateway.messages_to(CUSTOMER_PHONE))


def test_invalid_payment_method_is_422(client):
    number = _checkout(client)["order_number"]

    res = client.post(f"{API}/orders/{number}/payment-method", json={"payment_method": "paypal"})
    assert res.status_code == 422


def test_confirm_without_method_is_409(client):
    number = _checkout(client)["order_number"]

    res = client.post(f"{API}/orders/{number}/confirm-payment")
    assert res.status_code == 409
    assert res.json()["detail"]["status"] == "PENDING"


def test_expired_order_is_cancelled_on_poll(client, clock, gateway):
    number = _checkout(client)["order_number"]
    clock.advance(minutes=16)

    first = client.get(f"{API}/orders/{number}").json()
    second = client.get(f"{API}/orders/{number}").json()

    assert (first["status"], first["payment_status"]) == ("CANCELLED", "EXPIRED")
    assert second["status"] == "CANCELLED"
    assert gateway.count("ORDER CANCELLED") == 1

    res = client.post(f"{API}/orders/{number}/confirm-payment")
    assert res.status_code == 409


def test_admin_endpoints_require_admin(client, user_headers):
    number = _checkout(client)["order_number"]
    body = {"account_email": "user@x.com", "account_password": "pw123"}

    assert client.get(f"{API}/orders").status_code == 401
    assert client.get(f"{API}/orders", headers=user_headers).status_code == 403
    assert (
        client.post(f"{API}/orders/{number}/deliver", json=body, headers=user_headers).status_code
        == 403
    )
    bad_token = {"Authorization": "Bearer not-a-jwt"}
    assert client.get(f"{API}/orders", headers=bad_token).status_code == 401


def test_admin_can_list_and_inspect_orders(client, admin_headers):
    order = _checkout(client)

    listed = client.get(f"{API}/orders", headers=admin_headers).json()
    assert [o["order_number"] for o in listed] == [order["order_number"]]
    assert "refund_escalated_at" in listed[0]

    detail = client.get(f"{API}/orders/admin/{order['order_number']}", headers=admin_headers)
    assert detail.status_code == 200
    assert detail.json()["id"] == order["id"]


def test_deliver_pending_order_is_409(client, admin_headers):
    number = _checkout(client)["order_number"]

    res = client.post(
        f"{API}/orders/{number}/deliver",
        json={"account_email": "user@x.com", "account_password": "pw123"},
        headers=admin_headers,
    )
    assert res.status_code == 409


def test_cron_check_expired(client, clock, gateway, monkeypatch):
    monkeypatch.setattr(cron.settings, "CRON_SECRET", "s3cret")
    number = _checkout(client)["order_number"]
    clock.advance(minutes=16)

    assert client.get(f"{API}/cron/check-expired").status_code == 401
    assert (
        client.get(
            f"{API}/cron/check-expired", headers={"Authorization": "Bearer wrong"}
        ).status_code
        == 401
    )

    res = client.get(f"{API}/cron/check-expired", headers={"Authorization": "Bearer s3cret"})
    assert res.status_code == 200
    assert res.json() == {"checked": 1, "expired": [number], "escalated": [], "failed": []}

    again = client.get(f"{API}/cron/check-expired", headers={"Authorization": "Bearer s3cret"})
    assert again.json()["expired"] == []
    assert gateway.count("ORDER CANCELLED") == 1


def test_payment_settings_admin_update(client, admin_headers):
    listed = client.get(f"{API}/payment-settings").json()
    assert len(listed) == 3

    payload = {
        "settings": [
            {
                "method": "va",
                "label": "BCA Virtual Account",
                "enabled": True,
                "bank_name": "BCA",
                "va_number": "8808123456",
                "account_name": "ZOGAMING",
            },
            {"method": "gopay", "label": "GoPay", "enabled": False},
        ]
    }
    assert client.put(f"{API}/payment-settings", json=payload).status_code == 401

    res = client.put(f"{API}/payment-settings", json=payload, headers=admin_headers)
    assert res.status_code == 200
    by_method = {s["method"]: s for s in res.json()}
    assert by_method["va"]["va_number"] == "8808123456"
    assert by_method["gopay"]["enabled"] is False

    number = _checkout(client)["order_number"]
    page = client.get(f"{API}/orders/{number}/payment").json()
    assert {m["method"] for m in page["payment_methods"]} == {"qris", "va"}

    res = client.post(f"{API}/orders/{number}/payment-method", json={"payment_method": "gopay"})
    assert res.status_code == 400
