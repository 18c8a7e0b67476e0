from bson.objectid import ObjectId


def test_add_rejects_duplicates(client, customer, make_product):
    pid = make_product()
    resp = client.post("/api/wishlists/create", json={"product_id": pid}, headers=customer["headers"])
    assert resp.status_code == 201
    assert resp.json()["data"]["wishlist"] == [pid]

    resp = client.post("/api/wishlists/create", json={"product_id": pid}, headers=customer["headers"])
    assert resp.status_code == 400
    assert resp.json()["message"] == "Product already in wishlist"


def test_add_unknown_product(client, customer):
    resp = client.post("/api/wishlists/create", json={"product_id": str(ObjectId())}, headers=customer["headers"])
    assert resp.status_code == 404


def test_remove_and_clear(client, customer, make_product):
    first, second = make_product(), make_product()
    for pid in (first, second):
        client.post("/api/wishlists/create", json={"product_id": pid}, headers=customer["headers"])

    resp = client.post("/api/wishlists/update", json={"product_id": first}, headers=customer["headers"])
    assert resp.status_code == 200
    assert resp.json()["data"]["wishlist"] == [second]

    resp = client.post("/api/wishlists/update", json={"product_id": first}, headers=customer["headers"])
    assert resp.status_code == 404

    resp = client.post("/api/wishlists/delete", headers=customer["headers"])
    assert resp.status_code == 200
    assert client.post("/api/wishlists/list", json={}, headers=customer["headers"]).json()["data"] == []


def test_list_keeps_insertion_order_and_paginates(client, customer, make_product):
    ids = [make_product() for _ in range(3)]
    for pid in ids:
        client.post("/api/wishlists/create", json={"product_id": pid}, headers=customer["headers"])

    body = client.post("/api/wishlists/list", json={"page": 2, "size": 2}, headers=customer["headers"]).json()
    assert [p["id"] for p in body["data"]] == [ids[2]]
    assert body["pagination"] == {"page": 2, "size": 2, "total": 3}

    body = client.post("/api/wishlists/list", json={}, headers=customer["headers"]).json()
    assert [p["id"] for p in body["data"]] == ids


def test_wishlist_shows_on_profile(client, customer, make_product):
    pid = make_product()
    client.post("/api/wishlists/create", json={"product_id": pid}, headers=customer["headers"])
    profile = client.post("/api/users/profile", json={}, headers=customer["headers"]).json()["data"]
    assert [p["id"] for p in profile["wishlist"]] == [pid]
