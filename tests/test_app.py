import config


def test_root(client):
    assert client.get("/").json() == {"message": "Storefront API running"}


def test_seed_is_idempotent(client, mongo):
    resp = client.post("/seed")
    assert resp.status_code == 200
    assert resp.json()["seeded"] is True
    products = mongo["product"].count_documents({})
    assert products == mongo["product_detail"].count_documents({}) > 0

    resp = client.post("/seed")
    assert resp.json()["seeded"] is False
    assert mongo["product"].count_documents({}) == products
    assert mongo["user"].count_documents({"role": "admin"}) == 1


def test_seeded_catalog_is_browsable(client, mongo):
    client.post("/seed")
    tree = client.get("/api/categories/with-subcategories").json()["data"]
    electronics = next(c for c in tree if c["name"] == "Electronics")
    assert {c["name"] for c in electronics["sub_categories"]} == {"Mobiles", "Laptops", "Accessories"}

    body = client.post("/api/products/list", json={"category": electronics["id"], "size": 100}).json()
    assert body["pagination"]["total"] == 5


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert resp.json()["success"] is False


def test_diagnostics_read_configuration(client, monkeypatch):
    monkeypatch.setattr(config, "DATABASE_URL", "mongodb://localhost:27017")
    monkeypatch.setattr(config, "DATABASE_NAME", None)
    body = client.get("/test").json()
    assert body["database_url"] == "✅ Set"
    assert body["database_name"] == "❌ Not Set"
    assert body["database"] == "✅ Connected & Working"
