import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

import database
from auth import authorize, is_owner_or_admin
from schemas import IdBody, PageBody, Rating as RatingSchema
from utils import fetch_or_404, page_info, serialize_doc, success_response, to_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ratings", tags=["ratings"])


class RatingCreateBody(BaseModel):
    product_id: str
    rating: int = Field(..., ge=1, le=5)
    title: Optional[str] = None
    review: Optional[str] = None
    images: List[str] = []


class RatingUpdateFields(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    title: Optional[str] = None
    review: Optional[str] = None
    images: Optional[List[str]] = None


class RatingUpdateBody(BaseModel):
    id: str
    update: RatingUpdateFields = RatingUpdateFields()


class RatingListBody(PageBody):
    product_id: Optional[str] = None


@router.post("/create", status_code=201)
def create_rating(body: RatingCreateBody, user=Depends(authorize("rating", "create"))):
    product_id = to_object_id(body.product_id, "productId")
    fetch_or_404(database.products, product_id, "Product")
    # a soft-deleted review still counts
    existing = database.ratings.find_one({"product_id": product_id, "user_id": user["_id"]}, include_deleted=True)
    if existing:
        raise HTTPException(status_code=400, detail="You have already reviewed this product")

    rating = RatingSchema(
        product_id=product_id,
        user_id=user["_id"],
        rating=body.rating,
        title=body.title.strip() if body.title else None,
        review=body.review.strip() if body.review else None,
        images=body.images,
        verified_purchase=database.collection("order").find_one(
            {"user": user["_id"], "items.product": product_id, "order_status": "DELIVERED"}
        ) is not None,
    )
    oid = database.ratings.insert(rating)
    logger.info(f"User {user['_id']} added review {oid} for product {product_id} with rating {body.rating}")
    return success_response("Rating created successfully", serialize_doc(database.ratings.get(oid)))


@router.post("/update")
def update_rating(body: RatingUpdateBody, user=Depends(authorize("rating", "update"))):
    oid = to_object_id(body.id)
    rating = fetch_or_404(database.ratings, oid, "Rating")
    if rating["user_id"] != user["_id"]:
        raise HTTPException(status_code=403, detail="Unauthorized action")
    fields = body.update.model_dump(exclude_none=True)
    if fields:
        database.ratings.update(oid, fields)
    return success_response("Rating updated successfully", serialize_doc(database.ratings.get(oid)))


@router.post("/delete")
def delete_rating(body: IdBody, user=Depends(authorize("rating", "delete"))):
    oid = to_object_id(body.id)
    rating = fetch_or_404(database.ratings, oid, "Rating")
    if not is_owner_or_admin(user, rating["user_id"]):
        raise HTTPException(status_code=403, detail="Unauthorized action")
    database.ratings.soft_delete(oid, user["_id"])
    return success_response("Rating deleted successfully")


@router.post("/restore")
def restore_rating(body: IdBody, admin=Depends(authorize("rating", "restore"))):
    oid = to_object_id(body.id)
    if not database.ratings.restore(oid):
        raise HTTPException(status_code=404, detail="Rating not found")
    return success_response("Rating restored successfully")


def _rating_filter(body: RatingListBody) -> dict:
    if body.product_id:
        return {"product_id": to_object_id(body.product_id, "productId")}
    return {}


@router.post("/list")
def list_ratings(body: Optional[RatingListBody] = None, user=Depends(authorize("rating", "list"))):
    body = body or RatingListBody()
    docs, total = database.ratings.paginate(_rating_filter(body), body.page, body.size, sort=[("created_at", -1)])
    return success_response("Fetched successfully", [serialize_doc(d) for d in docs], page_info(body.page, body.size, total))


@router.post("/list/deleted")
def list_deleted_ratings(body: Optional[RatingListBody] = None, admin=Depends(authorize("rating", "list_deleted"))):
    body = body or RatingListBody()
    docs, total = database.ratings.paginate(_rating_filter(body), body.page, body.size, deleted=True)
    return success_response("Fetched deleted ratings", [serialize_doc(d) for d in docs], page_info(body.page, body.size, total))
