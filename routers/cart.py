import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

import database
from auth import authorize
from checkout import StockExceeded, apply_cart_delta, cart_total
from schemas import Cart as CartSchema
from utils import serialize_doc, success_response, to_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["cart"])


class CartBody(BaseModel):
    product_id: Optional[str] = None
    quantity: Optional[int] = None  # signed delta, not an absolute value


def get_or_create_cart(user_id) -> dict:
    carts = database.collection("cart")
    cart = carts.find_one({"user": user_id})
    if not cart:
        database.create_document("cart", CartSchema(user=user_id))
        cart = carts.find_one({"user": user_id})
    return cart


def resolve_lines(items: List[dict]) -> List[dict]:
    """Attach product documents (with their detail) to cart items.

    A line whose product is gone or soft-deleted keeps `product=None`.
    """
    ids = [item["product"] for item in items]
    products = {
        p["_id"]: p
        for p in database.collection("product").find({"_id": {"$in": ids}, "status": database.ACTIVE})
    }
    details = {d["product_id"]: d for d in database.collection("product_detail").find({"product_id": {"$in": ids}})}
    lines = []
    for item in items:
        product = products.get(item["product"])
        if product is not None:
            product = {**product, "detail": details.get(product["_id"])}
        lines.append({"product": product, "quantity": item["quantity"]})
    return lines


def _cart_view(cart: dict) -> dict:
    lines = [line for line in resolve_lines(cart.get("items", [])) if line["product"] is not None]
    return {
        "cart": serialize_doc({**cart, "items": lines}),
        "total_price": cart_total(lines),
    }


@router.post("/cart")
def cart(body: Optional[CartBody] = None, user=Depends(authorize("cart", "manage"))):
    body = body or CartBody()
    current = get_or_create_cart(user["_id"])

    if body.product_id is None and body.quantity is None:
        return success_response("Cart fetched successfully", _cart_view(current))

    product_id = to_object_id(body.product_id, "productId")
    if body.quantity is None:
        raise HTTPException(status_code=400, detail="Quantity must be an integer")

    product = database.collection("product").find_one({"_id": product_id})
    detail = database.collection("product_detail").find_one({"product_id": product_id})
    if not product or not detail:
        raise HTTPException(status_code=404, detail="Product detail not found")
    if body.quantity > 0 and product.get("status") != database.ACTIVE:
        raise HTTPException(status_code=400, detail="Product is not available")

    try:
        items = apply_cart_delta(current.get("items", []), product_id, body.quantity, detail.get("stock", 0))
    except StockExceeded as e:
        logger.warning(f"Cart update rejected for user {user['_id']}: {e}")
        raise HTTPException(status_code=400, detail={"message": str(e), "error": {"available_stock": e.available}})

    database.collection("cart").update_one(
        {"_id": current["_id"]},
        {"$set": {"items": items, "updated_at": database.utcnow()}},
    )
    updated = database.collection("cart").find_one({"_id": current["_id"]})
    return success_response("Cart updated successfully", _cart_view(updated))
