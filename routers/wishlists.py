import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

import database
from auth import authorize
from schemas import PageBody
from utils import page_info, serialize_doc, success_response, to_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/wishlists", tags=["wishlists"])


class WishlistBody(BaseModel):
    product_id: str


def _wishlist_ids(user_id) -> list:
    user = database.users.get(user_id) or {}
    return [str(pid) for pid in user.get("wishlist", [])]


@router.post("/create", status_code=201)
def add_to_wishlist(body: WishlistBody, user=Depends(authorize("wishlist", "manage"))):
    product_id = to_object_id(body.product_id, "productId")
    if not database.products.get(product_id):
        raise HTTPException(status_code=404, detail="Product not found")
    res = database.collection("user").update_one(
        {"_id": user["_id"], "wishlist": {"$ne": product_id}},
        {"$addToSet": {"wishlist": product_id}, "$set": {"updated_at": database.utcnow()}},
    )
    if res.matched_count == 0:
        raise HTTPException(status_code=400, detail="Product already in wishlist")
    return success_response("Product added to wishlist", {"wishlist": _wishlist_ids(user["_id"])})


@router.post("/update")
def remove_from_wishlist(body: WishlistBody, user=Depends(authorize("wishlist", "manage"))):
    product_id = to_object_id(body.product_id, "productId")
    if product_id not in user.get("wishlist", []):
        raise HTTPException(status_code=404, detail="Product not found in wishlist")
    database.collection("user").update_one(
        {"_id": user["_id"]},
        {"$pull": {"wishlist": product_id}, "$set": {"updated_at": database.utcnow()}},
    )
    return success_response("Product removed from wishlist", {"wishlist": _wishlist_ids(user["_id"])})


@router.post("/delete")
def clear_wishlist(user=Depends(authorize("wishlist", "manage"))):
    database.users.update(user["_id"], {"wishlist": []})
    return success_response("Wishlist cleared successfully", {"wishlist": []})


@router.post("/list")
def list_wishlist(body: Optional[PageBody] = None, user=Depends(authorize("wishlist", "manage"))):
    body = body or PageBody()
    ids = user.get("wishlist", [])
    products = {p["_id"]: p for p in database.get_documents("product", {"_id": {"$in": ids}})}
    # keep the order the products were added in
    resolved = [products[pid] for pid in ids if pid in products]
    start = (body.page - 1) * body.size
    page = resolved[start:start + body.size]
    return success_response(
        "Fetched user wishlist successfully",
        [serialize_doc(p) for p in page],
        page_info(body.page, body.size, len(resolved)),
    )
