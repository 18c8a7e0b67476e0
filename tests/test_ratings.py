from bson.objectid import ObjectId


def rate(client, headers, product_id, rating=4, **extra):
    return client.post("/api/ratings/create", json={"product_id": product_id, "rating": rating, **extra}, headers=headers)


def test_one_rating_per_user_and_product(client, customer, make_product):
    pid = make_product()
    resp = rate(client, customer["headers"], pid, 5, title=" Great ", review="Works well")
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["title"] == "Great"
    assert data["verified_purchase"] is False

    resp = rate(client, customer["headers"], pid, 3)
    assert resp.status_code == 400
    assert resp.json()["message"] == "You have already reviewed this product"


def test_rating_value_is_bounded(client, customer, make_product):
    pid = make_product()
    assert rate(client, customer["headers"], pid, 0).status_code == 400
    assert rate(client, customer["headers"], pid, 6).status_code == 400


def test_rating_unknown_product(client, customer):
    assert rate(client, customer["headers"], str(ObjectId())).status_code == 404


def test_verified_purchase_after_delivery(client, admin, customer, make_product):
    pid = make_product(stock=3)
    client.post("/api/users/cart", json={"product_id": pid, "quantity": 1}, headers=customer["headers"])
    order = client.post(
        "/api/orders/create",
        json={
            "shipping_address": {
                "full_name": "Jane", "phone": "9876543210", "street": "x", "city": "y", "state": "z", "postal_code": "1",
            },
            "payment": {"method": "UPI"},
        },
        headers=customer["headers"],
    ).json()["data"]
    client.post(f"/api/orders/{order['id']}/status", json={"status": "DELIVERED"}, headers=admin["headers"])
    resp = rate(client, customer["headers"], pid)
    assert resp.json()["data"]["verified_purchase"] is True


def test_only_owner_updates(client, make_user, make_product):
    author, other = make_user(), make_user()
    pid = make_product()
    rid = rate(client, author["headers"], pid, 2).json()["data"]["id"]

    resp = client.post("/api/ratings/update", json={"id": rid, "update": {"rating": 4}}, headers=other["headers"])
    assert resp.status_code == 403
    resp = client.post("/api/ratings/update", json={"id": rid, "update": {"rating": 4, "review": "Better now"}}, headers=author["headers"])
    assert resp.status_code == 200
    assert resp.json()["data"]["rating"] == 4
    assert resp.json()["data"]["review"] == "Better now"


def test_delete_list_and_restore(client, admin, customer, make_product):
    pid = make_product()
    rid = rate(client, customer["headers"], pid).json()["data"]["id"]

    listed = client.post("/api/ratings/list", json={"product_id": pid}, headers=customer["headers"]).json()
    assert [r["id"] for r in listed["data"]] == [rid]

    assert client.post("/api/ratings/delete", json={"id": rid}, headers=customer["headers"]).status_code == 200
    assert client.post("/api/ratings/list", json={}, headers=customer["headers"]).json()["data"] == []
    deleted = client.post("/api/ratings/list/deleted", json={}, headers=admin["headers"]).json()
    assert [r["id"] for r in deleted["data"]] == [rid]

    # a soft-deleted review still blocks a second one
    assert rate(client, customer["headers"], pid).status_code == 400

    assert client.post("/api/ratings/restore", json={"id": rid}, headers=customer["headers"]).status_code == 403
    assert client.post("/api/ratings/restore", json={"id": rid}, headers=admin["headers"]).status_code == 200
    assert len(client.post("/api/ratings/list", json={}, headers=customer["headers"]).json()["data"]) == 1
