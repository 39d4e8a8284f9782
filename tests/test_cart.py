from cart import STORAGE_KEY, Cart

DUCK = {"id": "p1", "name": "Rubber Duck", "price": 10.0}
BOTTLE = {"id": "p2", "name": "Coffee Bottle", "price": 2.5}


def test_add_merges_same_product():
    cart = Cart()
    first = cart.add(DUCK, 1)
    cart.add(DUCK, 2)
    assert len(cart.lines) == 1
    assert first.quantity == 3
    assert first.id.startswith("cart_p1_")


def test_totals():
    cart = Cart()
    cart.add(DUCK, 2)
    cart.add(BOTTLE, 4)
    assert cart.total() == 30.0
    assert cart.count() == 6


def test_update_quantity_and_remove():
    cart = Cart()
    duck = cart.add(DUCK, 1)
    bottle = cart.add(BOTTLE, 1)
    cart.update_quantity(duck.id, 5)
    assert duck.quantity == 5
    cart.update_quantity(bottle.id, 0)
    assert [line.product["id"] for line in cart.lines] == ["p1"]
    cart.remove(duck.id)
    assert cart.lines == []


def test_clear():
    cart = Cart()
    cart.add(DUCK, 1)
    cart.clear()
    assert cart.count() == 0


def test_round_trip_through_storage():
    storage = {}
    cart = Cart()
    cart.add(DUCK, 2)
    cart.add(BOTTLE, 1)
    storage[STORAGE_KEY] = cart.dumps()

    reloaded = Cart.loads(storage[STORAGE_KEY])
    assert [(line.product["id"], line.quantity) for line in reloaded.lines] == [("p1", 2), ("p2", 1)]
    assert [line.id for line in reloaded.lines] == [line.id for line in cart.lines]


def test_corrupt_storage_gives_empty_cart():
    assert Cart.loads("{not json").lines == []
    assert Cart.loads('[{"id": "x"}]').lines == []
    assert Cart.loads(None).lines == []


def test_checkout_items():
    cart = Cart()
    cart.add(DUCK, 2)
    assert cart.checkout_items() == [{"productId": "p1", "quantity": 2, "price": 10.0}]


def test_session_cart_endpoints(client):
    headers = {"X-Session-Id": "browser-1"}
    assert client.get("/api/cart", headers=headers).json()["data"] == {"items": [], "total": 0, "count": 0}

    res = client.put("/api/cart", json={"items": [{"product": DUCK, "quantity": 2}]}, headers=headers)
    assert res.status_code == 200
    assert res.json()["data"]["total"] == 20.0

    # last write wins
    client.put("/api/cart", json={"items": [{"id": "line-1", "product": BOTTLE, "quantity": 1}]}, headers=headers)
    data = client.get("/api/cart", headers=headers).json()["data"]
    assert [(i["id"], i["product"]["id"], i["quantity"]) for i in data["items"]] == [("line-1", "p2", 1)]

    other = client.get("/api/cart", headers={"X-Session-Id": "browser-2"}).json()["data"]
    assert other["items"] == []

    client.delete("/api/cart", headers=headers)
    assert client.get("/api/cart", headers=headers).json()["data"]["count"] == 0


def test_session_cart_requires_header(client):
    res = client.get("/api/cart")
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"
