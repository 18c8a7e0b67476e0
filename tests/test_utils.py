from datetime import datetime, timezone

import pytest
from bson.objectid import ObjectId
from fastapi import HTTPException

from utils import page_info, public_user, serialize_doc, slugify, to_object_id


def test_serialize_doc_is_recursive():
    oid, ref = ObjectId(), ObjectId()
    when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    doc = {"_id": oid, "ref": ref, "at": when, "items": [{"_id": ref, "product": oid}], "n": 3}
    out = serialize_doc(doc)
    assert out == {
        "id": str(oid),
        "ref": str(ref),
        "at": when.isoformat(),
        "items": [{"id": str(ref), "product": str(oid)}],
        "n": 3,
    }


def test_public_user_hides_secrets():
    user = {"_id": ObjectId(), "name": "A", "password_hash": "x", "reset_otp": "123456", "reset_otp_expire": None}
    assert set(public_user(user)) == {"id", "name"}


@pytest.mark.parametrize(
    "text, slug",
    [("Pixel 7A", "pixel-7a"), ("  Men's  Shoes ", "mens-shoes"), ("Café Crème", "cafe-creme"), ("a_b--c", "a-b-c")],
)
def test_slugify(text, slug):
    assert slugify(text) == slug


def test_to_object_id():
    oid = ObjectId()
    assert to_object_id(str(oid)) == oid
    assert to_object_id(oid) is oid
    with pytest.raises(HTTPException) as exc:
        to_object_id("123", "productId")
    assert exc.value.status_code == 400
    assert exc.value.detail == "Invalid productId"


def test_page_info():
    assert page_info(2, 5, 11) == {"page": 2, "size": 5, "total": 11}
