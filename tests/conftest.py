import itertools
import os

os.environ.setdefault("ENVIRONMENT", "test")

import mongomock
import pytest
from bson.objectid import ObjectId
from fastapi.testclient import TestClient

import database
from main import app


@pytest.fixture(autouse=True)
def mongo(monkeypatch):
    db = mongomock.MongoClient()["storefront_test"]
    monkeypatch.setattr(database, "db", db)
    monkeypatch.setattr(database, "client", None)
    database.ensure_indexes()
    return db


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user(client, mongo):
    counter = itertools.count()

    def _make(role="customer"):
        n = next(counter)
        email = f"{role}{n}@example.com"
        resp = client.post(
            "/api/users/create",
            json={"name": f"{role.title()} {n}", "email": email, "mobile": f"98765{n:05d}", "password": "secret123"},
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]
        if role != "customer":
            mongo["user"].update_one({"_id": ObjectId(data["user"]["id"])}, {"$set": {"role": role}})
        return {
            "id": data["user"]["id"],
            "email": email,
            "headers": {"Authorization": f"Bearer {data['token']}"},
        }

    return _make


@pytest.fixture
def admin(make_user):
    return make_user("admin")


@pytest.fixture
def customer(make_user):
    return make_user("customer")


@pytest.fixture
def seller(make_user):
    return make_user("seller")


@pytest.fixture
def make_product(client, admin):
    counter = itertools.count()

    def _make(price=100, stock=5, discount_price=None, category=None, headers=None, title=None):
        body = {
            "title": title or f"Test Product {next(counter)}",
            "price": price,
            "stock": stock,
            "description": "A product used in tests",
            "thumbnail": "https://cdn.example.com/p.png",
        }
        if discount_price is not None:
            body["discount_price"] = discount_price
        if category is not None:
            body["category"] = category
        resp = client.post("/api/products/create", json=body, headers=headers or admin["headers"])
        assert resp.status_code == 200, resp.text
        return resp.json()["data"]["id"]

    return _make


@pytest.fixture
def make_category(client, admin):
    def _make(name, parent=None, sort_order=0):
        body = {"name": name, "sort_order": sort_order}
        if parent:
            body["parent_category"] = parent
        resp = client.post("/api/categories/create", json=body, headers=admin["headers"])
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]["id"]

    return _make
