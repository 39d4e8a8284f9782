from datetime import datetime, timedelta, timezone

import pytest

from conftest import bearer, make_order


def checkout_payload(product_id, **overrides):
    payload = {
        "items": [{"productId": product_id, "quantity": 2, "price": 10}],
        "totals": {"subtotal": 20, "tax": 0, "shipping": 0, "total": 20},
        "shipping": {
            "fullName": "Test Buyer",
            "email": "buyer@qalab.hu",
            "phone": "+36 1 234 5678",
            "address": "Fo utca 1",
            "city": "Budapest",
            "zipCode": "1011",
            "country": "HU",
        },
        "payment": {"method": "card", "cardNumber": "4111 1111 1111 1234", "cvv": "123"},
    }
    payload.update(overrides)
    return payload


def test_create_then_read_order(client, user, product):
    product_id = str(product["_id"])
    res = client.post("/api/orders", json=checkout_payload(product_id), headers=bearer(user))
    assert res.status_code == 200
    body = res.json()
    order = body["data"]
    assert body["orderId"] == order["id"]
    assert order["status"] == "PENDING"
    assert order["totalAmount"] == 20
    assert order["userId"] == str(user["_id"])
    assert len(order["items"]) == 1
    item = order["items"][0]
    assert item["orderId"] == order["id"]
    assert item["productId"] == product_id
    assert item["quantity"] == 2
    assert item["price"] == 10
    assert item["product"]["name"] == product["name"]

    fetched = client.get(f"/api/orders/{order['id']}", headers=bearer(user))
    assert fetched.status_code == 200
    assert fetched.json()["data"]["items"] == order["items"]
    assert fetched.json()["data"]["user"]["email"] == user["email"]


def test_customer_info_snapshot(client, user, product):
    order = client.post("/api/orders", json=checkout_payload(str(product["_id"])), headers=bearer(user)).json()["data"]
    info = order["customerInfo"]
    assert info["name"] == "Test Buyer"
    assert info["email"] == "buyer@qalab.hu"
    assert info["zipCode"] == "1011"
    assert order["shipping"]["city"] == "Budapest"


def test_customer_info_defaults_to_user(client, user, product):
    payload = checkout_payload(str(product["_id"]))
    del payload["shipping"]
    order = client.post("/api/orders", json=payload, headers=bearer(user)).json()["data"]
    assert order["customerInfo"]["name"] == user["name"]
    assert order["customerInfo"]["email"] == user["email"]
    assert order["customerInfo"]["phone"] == ""


def test_payment_is_masked(client, mongo, user, product):
    order = client.post("/api/orders", json=checkout_payload(str(product["_id"])), headers=bearer(user)).json()["data"]
    payment = order["shipping"]["payment"]
    assert payment["cardNumber"] == "**** **** **** 1234"
    assert "cvv" not in payment
    stored = mongo["order"].find_one()
    assert "cvv" not in stored["shipping"]["payment"]


def test_total_is_taken_from_client(client, user, product):
    payload = checkout_payload(str(product["_id"]), totals={"total": 999})
    order = client.post("/api/orders", json=payload, headers=bearer(user)).json()["data"]
    assert order["totalAmount"] == 999


def test_total_amount_fallback(client, user, product):
    payload = checkout_payload(str(product["_id"]), totalAmount=55.5)
    del payload["totals"]
    order = client.post("/api/orders", json=payload, headers=bearer(user)).json()["data"]
    assert order["totalAmount"] == 55.5


def test_nested_product_item_shape(client, user, product):
    payload = checkout_payload(
        "ignored",
        items=[{"id": "cart_x_1", "product": {"id": str(product["_id"]), "price": 12.5, "name": "Duck"}, "quantity": 1}],
    )
    order = client.post("/api/orders", json=payload, headers=bearer(user)).json()["data"]
    assert order["items"][0]["productId"] == str(product["_id"])
    assert order["items"][0]["price"] == 12.5


def test_nested_product_price_must_not_be_negative(client, mongo, user, product):
    payload = checkout_payload(
        "ignored",
        items=[{"product": {"id": str(product["_id"]), "price": -5}, "quantity": 1}],
    )
    res = client.post("/api/orders", json=payload, headers=bearer(user))
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"
    assert mongo["order"].count_documents({}) == 0


def test_item_without_price_is_rejected(client, mongo, user, product):
    payload = checkout_payload(str(product["_id"]), items=[{"productId": str(product["_id"]), "quantity": 1}])
    res = client.post("/api/orders", json=payload, headers=bearer(user))
    assert res.status_code == 400
    assert res.json()["error"]["details"][0]["field"] == "items.0.price"
    assert mongo["order"].count_documents({}) == 0


def test_item_quantity_must_be_positive(client, user, product):
    payload = checkout_payload(str(product["_id"]), items=[{"productId": str(product["_id"]), "quantity": 0, "price": 1}])
    res = client.post("/api/orders", json=payload, headers=bearer(user))
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


def test_supplied_status_is_normalised(client, user, product):
    payload = checkout_payload(str(product["_id"]), status="processing")
    order = client.post("/api/orders", json=payload, headers=bearer(user)).json()["data"]
    assert order["status"] == "PROCESSING"


def test_unknown_status_is_rejected(client, user, product):
    payload = checkout_payload(str(product["_id"]), status="confirmed")
    res = client.post("/api/orders", json=payload, headers=bearer(user))
    assert res.status_code == 400
    assert res.json()["error"]["details"][0]["field"] == "status"


def test_orders_require_auth(client, mongo):
    res = client.get("/api/orders")
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "MISSING_AUTH"


def test_list_is_scoped_and_newest_first(client, user, other_user):
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    older = make_order(user, created_at=base)
    newer = make_order(user, created_at=base + timedelta(days=1))
    make_order(other_user, created_at=base + timedelta(days=2))

    data = client.get("/api/orders", headers=bearer(user)).json()["data"]
    assert [o["id"] for o in data] == [str(newer["_id"]), str(older["_id"])]


def test_admin_sees_all_orders(client, user, other_user, admin):
    make_order(user)
    make_order(other_user)
    data = client.get("/api/orders", headers=bearer(admin)).json()["data"]
    assert len(data) == 2


def test_cannot_read_someone_elses_order(client, user, other_user):
    order = make_order(other_user)
    res = client.get(f"/api/orders/{order['_id']}", headers=bearer(user))
    assert res.status_code == 404


def test_unknown_order_id(client, user):
    assert client.get("/api/orders/not-an-id", headers=bearer(user)).status_code == 404
    assert client.get("/api/orders/" + "0" * 24, headers=bearer(user)).status_code == 404


@pytest.mark.parametrize("status", ["PENDING", "PROCESSING"])
def test_cancel_allowed(client, mongo, user, status):
    order = make_order(user, status=status)
    res = client.post(f"/api/orders/{order['_id']}/cancel", headers=bearer(user))
    assert res.status_code == 200
    assert res.json()["data"]["status"] == "CANCELLED"
    assert mongo["order"].find_one({"_id": order["_id"]})["status"] == "CANCELLED"


@pytest.mark.parametrize("status", ["SHIPPED", "DELIVERED", "CANCELLED"])
def test_cancel_rejected(client, mongo, user, status):
    order = make_order(user, status=status)
    res = client.post(f"/api/orders/{order['_id']}/cancel", headers=bearer(user))
    assert res.status_code == 409
    error = res.json()["error"]
    assert error["code"] == "INVALID_STATUS_TRANSITION"
    assert status in error["message"]
    assert mongo["order"].find_one({"_id": order["_id"]})["status"] == status


def test_cancel_twice(client, user, product):
    order_id = client.post("/api/orders", json=checkout_payload(str(product["_id"])), headers=bearer(user)).json()["orderId"]
    first = client.post(f"/api/orders/{order_id}/cancel", headers=bearer(user))
    second = client.post(f"/api/orders/{order_id}/cancel", headers=bearer(user))
    assert first.status_code == 200
    assert second.status_code == 409
    assert "CANCELLED" in second.json()["error"]["message"]


def test_cancel_someone_elses_order(client, user, other_user):
    order = make_order(other_user)
    res = client.post(f"/api/orders/{order['_id']}/cancel", headers=bearer(user))
    assert res.status_code == 404


def test_admin_can_cancel_any_order(client, user, admin):
    order = make_order(user, status="PROCESSING")
    res = client.post(f"/api/orders/{order['_id']}/cancel", headers=bearer(admin))
    assert res.status_code == 200
    assert res.json()["data"]["user"]["id"] == str(user["_id"])
