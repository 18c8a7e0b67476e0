import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

import database
from auth import authorize, is_owner_or_admin
from checkout import compute_pricing, snapshot_items
from routers.cart import resolve_lines
from schemas import Order as OrderSchema, OrderStatus, PageBody, Payment, PaymentMethod, ShippingAddress
from utils import page_info, serialize_doc, success_response, to_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"])


# ----------------------- Models -----------------------
class PaymentChoice(BaseModel):
    method: PaymentMethod
    provider: Optional[str] = None


class OrderCreateBody(BaseModel):
    shipping_address: ShippingAddress
    payment: PaymentChoice
    notes: Optional[str] = None


class PayBody(BaseModel):
    transaction_id: str = Field(..., min_length=1)
    provider: Optional[str] = None
    status: Literal["SUCCESS", "FAILED", "REFUNDED"] = "SUCCESS"


class StatusBody(BaseModel):
    status: OrderStatus


class CancelBody(BaseModel):
    reason: Optional[str] = None


def _load_order(order_id: str, user: dict) -> dict:
    oid = to_object_id(order_id)
    order = database.collection("order").find_one({"_id": oid})
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    if not is_owner_or_admin(user, order["user"]):
        logger.warning(f"User {user['_id']} denied access to order {oid}")
        raise HTTPException(status_code=403, detail="Access denied")
    return order


# ----------------------- Checkout -----------------------
@router.post("/create", status_code=201)
def create_order(body: OrderCreateBody, user=Depends(authorize("order", "create"))):
    carts = database.collection("cart")
    cart = carts.find_one({"user": user["_id"]})
    if not cart or not cart.get("items"):
        raise HTTPException(status_code=400, detail="Cart is empty")

    lines = resolve_lines(cart["items"])
    missing = [str(item["product"]) for item, line in zip(cart["items"], lines) if line["product"] is None]
    if missing:
        raise HTTPException(
            status_code=400,
            detail={"message": "Some products in your cart are no longer available", "error": {"products": missing}},
        )

    items = snapshot_items(lines)
    order = OrderSchema(
        user=user["_id"],
        items=items,
        shipping_address=body.shipping_address,
        payment=Payment(method=body.payment.method, provider=body.payment.provider),
        pricing=compute_pricing(items),
        notes=body.notes,
    )

    with database.transaction() as session:
        order_id = database.create_document("order", order, session=session)
        now = database.utcnow()
        carts.update_one(
            {"_id": cart["_id"]},
            {"$set": {"items": [], "updated_at": now}},
            **database.session_kwargs(session),
        )
        database.collection("profile").update_one(
            {"user": user["_id"]},
            {"$push": {"orders": to_object_id(order_id)}, "$set": {"updated_at": now}},
            **database.session_kwargs(session),
        )

    created = database.collection("order").find_one({"_id": to_object_id(order_id)})
    logger.info(f"Created order {order_id} for user {user['_id']}. Total: {created['pricing']['grand_total']}")
    return success_response("Order placed successfully", serialize_doc(created))


# ----------------------- Queries -----------------------
@router.post("/my")
def my_orders(body: Optional[PageBody] = None, user=Depends(authorize("order", "read"))):
    body = body or PageBody()
    coll = database.collection("order")
    query = {"user": user["_id"]}
    docs = coll.find(query).sort("created_at", -1).skip((body.page - 1) * body.size).limit(body.size)
    total = coll.count_documents(query)
    return success_response("Fetched successfully", [serialize_doc(d) for d in docs], page_info(body.page, body.size, total))


@router.get("/{order_id}")
def get_order(order_id: str, user=Depends(authorize("order", "read"))):
    order = _load_order(order_id, user)
    owner = database.collection("user").find_one({"_id": order["user"]}, {"name": 1, "email": 1})
    order["user"] = owner or order["user"]
    return success_response("Fetched successfully", serialize_doc(order))


# ----------------------- Lifecycle -----------------------
@router.post("/{order_id}/pay")
def mark_order_paid(order_id: str, body: PayBody, user=Depends(authorize("order", "pay"))):
    order = _load_order(order_id, user)
    fields = {
        "payment.status": body.status,
        "payment.transaction_id": body.transaction_id,
        "is_paid": body.status == "SUCCESS",
        "updated_at": database.utcnow(),
    }
    if body.provider:
        fields["payment.provider"] = body.provider
    if body.status == "SUCCESS":
        fields["payment.paid_at"] = fields["updated_at"]
    database.collection("order").update_one({"_id": order["_id"]}, {"$set": fields})
    logger.info(f"Payment {body.status} recorded for order {order['_id']} (txn {body.transaction_id})")
    return success_response("Payment recorded successfully")


@router.post("/{order_id}/status")
def update_order_status(order_id: str, body: StatusBody, admin=Depends(authorize("order", "update_status"))):
    order = _load_order(order_id, admin)
    now = database.utcnow()
    fields = {"order_status": body.status, "updated_at": now}
    if body.status == "DELIVERED":
        fields["is_delivered"] = True
        fields["delivered_at"] = now
    database.collection("order").update_one({"_id": order["_id"]}, {"$set": fields})
    logger.info(f"Order {order['_id']} status updated to {body.status} by user {admin['_id']}")
    return success_response("Order status updated")


@router.post("/{order_id}/cancel")
def cancel_order(order_id: str, body: Optional[CancelBody] = None, user=Depends(authorize("order", "cancel"))):
    body = body or CancelBody()
    order = _load_order(order_id, user)
    now = database.utcnow()
    res = database.collection("order").update_one(
        {"_id": order["_id"], "order_status": "PLACED"},
        {"$set": {"order_status": "CANCELLED", "cancelled_at": now, "cancellation_reason": body.reason, "updated_at": now}},
    )
    if res.matched_count == 0:
        raise HTTPException(status_code=400, detail="Order cannot be cancelled at this stage")
    logger.info(f"Order {order['_id']} cancelled by user {user['_id']}")
    return success_response("Order cancelled successfully")


@router.post("/{order_id}/return")
def request_return(order_id: str, user=Depends(authorize("order", "return"))):
    order = _load_order(order_id, user)
    res = database.collection("order").update_one(
        {"_id": order["_id"], "order_status": "DELIVERED"},
        {"$set": {"order_status": "RETURN_REQUESTED", "updated_at": database.utcnow()}},
    )
    if res.matched_count == 0:
        raise HTTPException(status_code=400, detail="Return not allowed for this order")
    logger.info(f"Return requested for order {order['_id']} by user {user['_id']}")
    return success_response("Return request submitted")
