from bson.objectid import ObjectId


def add(client, headers, product_id, quantity):
    return client.post("/api/users/cart", json={"product_id": product_id, "quantity": quantity}, headers=headers)


def test_empty_body_returns_cart(client, customer):
    resp = client.post("/api/users/cart", json={}, headers=customer["headers"])
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Cart fetched successfully"
    assert body["data"]["cart"]["items"] == []
    assert body["data"]["total_price"] == 0


def test_quantity_is_a_delta_capped_by_stock(client, customer, make_product):
    pid = make_product(stock=5)
    assert add(client, customer["headers"], pid, 2).status_code == 200

    resp = add(client, customer["headers"], pid, 10)
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "Only 5 items available in stock"
    assert body["error"] == {"available_stock": 5}

    resp = add(client, customer["headers"], pid, 2)
    assert resp.status_code == 200
    items = resp.json()["data"]["cart"]["items"]
    assert len(items) == 1
    assert items[0]["quantity"] == 4
    assert items[0]["product"]["id"] == pid


def test_line_removed_when_quantity_reaches_zero(client, customer, make_product):
    pid = make_product()
    add(client, customer["headers"], pid, 2)
    resp = add(client, customer["headers"], pid, -3)
    assert resp.status_code == 200
    assert resp.json()["data"]["cart"]["items"] == []


def test_total_uses_discount_price(client, customer, make_product):
    a = make_product(price=100, discount_price=80)
    b = make_product(price=50)
    add(client, customer["headers"], a, 2)
    resp = add(client, customer["headers"], b, 1)
    assert resp.json()["data"]["total_price"] == 210


def test_invalid_requests(client, customer, make_product):
    pid = make_product()
    resp = add(client, customer["headers"], "bogus", 1)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid productId"

    resp = client.post("/api/users/cart", json={"product_id": pid}, headers=customer["headers"])
    assert resp.status_code == 400
    assert resp.json()["message"] == "Quantity must be an integer"

    resp = add(client, customer["headers"], str(ObjectId()), 1)
    assert resp.status_code == 404


def test_deleted_product_cannot_be_added(client, admin, customer, make_product):
    pid = make_product()
    client.post("/api/products/delete", json={"id": pid}, headers=admin["headers"])
    resp = add(client, customer["headers"], pid, 1)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Product is not available"


def test_seller_has_no_cart(client, seller):
    assert client.post("/api/users/cart", json={}, headers=seller["headers"]).status_code == 403


def test_deleted_product_drops_out_of_cart_view(client, admin, customer, make_product):
    kept = make_product(price=100)
    gone = make_product(price=40)
    add(client, customer["headers"], kept, 1)
    add(client, customer["headers"], gone, 2)
    client.post("/api/products/delete", json={"id": gone}, headers=admin["headers"])

    data = client.post("/api/users/cart", json={}, headers=customer["headers"]).json()["data"]
    assert [item["product"]["id"] for item in data["cart"]["items"]] == [kept]
    assert data["total_price"] == 100
