import logging
import re
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

import database
from auth import authorize
from schemas import IdBody, PageBody, Product as ProductSchema, ProductDetail as ProductDetailSchema
from utils import fetch_or_404, page_info, public_user, serialize_doc, slugify, success_response, to_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/products", tags=["products"])

LIST_PROJECTION = {
    "title": 1,
    "slug": 1,
    "brand": 1,
    "price": 1,
    "discount_price": 1,
    "thumbnail": 1,
    "images": 1,
    "category": 1,
    "created_by": 1,
    "created_at": 1,
}


# ----------------------- Models -----------------------
class ProductCreateBody(BaseModel):
    title: str = Field(..., min_length=1)
    price: float = Field(..., gt=0)
    discount_price: Optional[float] = Field(None, ge=0)
    brand: Optional[str] = None
    category: Optional[str] = None
    thumbnail: str = ""
    images: List[str] = []
    description: str = ""
    specifications: Dict[str, Any] = {}
    stock: int = Field(0, ge=0)
    warranty: Optional[str] = None
    shipping_info: Optional[str] = None
    return_policy: Optional[str] = None


class ProductDetailUpdate(BaseModel):
    description: Optional[str] = None
    specifications: Optional[Dict[str, Any]] = None
    stock: Optional[int] = Field(None, ge=0)
    warranty: Optional[str] = None
    shipping_info: Optional[str] = None
    return_policy: Optional[str] = None


class ProductUpdateFields(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, gt=0)
    discount_price: Optional[float] = Field(None, ge=0)
    brand: Optional[str] = None
    category: Optional[str] = None
    thumbnail: Optional[str] = None
    images: Optional[List[str]] = None
    detail: Optional[ProductDetailUpdate] = None


class ProductUpdateBody(BaseModel):
    id: str
    update: ProductUpdateFields = ProductUpdateFields()


class ProductListBody(PageBody):
    category: str = "all"


# ----------------------- Helpers -----------------------
def _resolve_brand(value: Optional[str]):
    if not value:
        return None
    brand_id = to_object_id(value, "brand")
    if not database.brands.get(brand_id):
        raise HTTPException(status_code=400, detail="Provided brand does not exist")
    return brand_id


def _resolve_category(value: Optional[str]):
    if not value or not value.strip():
        return None
    category_id = to_object_id(value, "category")
    if not database.categories.get(category_id):
        raise HTTPException(status_code=400, detail="Provided category does not exist")
    return category_id


def _slug_taken(slug: str, exclude_id=None) -> bool:
    filt = {"slug": slug}
    if exclude_id is not None:
        filt["_id"] = {"$ne": exclude_id}
    return database.collection("product").find_one(filt) is not None


def _category_scope(category_id) -> List:
    children = database.collection("category").find({"parent_category": category_id}, {"_id": 1})
    return [category_id] + [c["_id"] for c in children]


# ----------------------- Routes -----------------------
@router.post("/create")
def create_product(body: ProductCreateBody, user=Depends(authorize("product", "create"))):
    brand_id = _resolve_brand(body.brand)
    category_id = _resolve_category(body.category)
    slug = slugify(body.title)
    if not slug or _slug_taken(slug):
        raise HTTPException(status_code=400, detail="Product with this title already exists")

    product = ProductSchema(
        title=body.title.strip(),
        slug=slug,
        brand=brand_id,
        category=category_id,
        thumbnail=body.thumbnail,
        images=body.images,
        price=body.price,
        discount_price=body.discount_price,
        created_by=user["_id"],
    )
    with database.transaction() as session:
        product_id = database.products.insert(product, session=session)
        detail = ProductDetailSchema(
            product_id=product_id,
            description=body.description,
            specifications=body.specifications,
            stock=body.stock,
            warranty=body.warranty,
            shipping_info=body.shipping_info,
            return_policy=body.return_policy,
        )
        detail_id = database.create_document("product_detail", detail, session=session)
        database.products.update(product_id, {"detail": to_object_id(detail_id)}, session=session)

    logger.info(f"Added new product {slug} (ID: {product_id}) with stock {body.stock}")
    return success_response("Product created successfully", serialize_doc(database.products.get(product_id)))


@router.post("/update")
def update_product(body: ProductUpdateBody, user=Depends(authorize("product", "update"))):
    oid = to_object_id(body.id)
    product = fetch_or_404(database.products, oid, "Product")
    if user["role"] == "seller" and product.get("created_by") != user["_id"]:
        raise HTTPException(status_code=403, detail="Unauthorized action")

    fields = body.update.model_dump(exclude_none=True, exclude={"detail"})
    if "brand" in fields:
        fields["brand"] = _resolve_brand(fields["brand"])
    if "category" in fields:
        fields["category"] = _resolve_category(fields["category"])
    if "title" in fields:
        fields["title"] = fields["title"].strip()
        fields["slug"] = slugify(fields["title"])
        if _slug_taken(fields["slug"], exclude_id=oid):
            raise HTTPException(status_code=400, detail="Product with this title already exists")
    if fields:
        database.products.update(oid, fields)

    if body.update.detail is not None:
        detail_fields = body.update.detail.model_dump(exclude_none=True)
        if detail_fields:
            detail_fields["updated_at"] = database.utcnow()
            database.collection("product_detail").update_one({"product_id": oid}, {"$set": detail_fields})
    return success_response("Product updated successfully", serialize_doc(database.products.get(oid)))


@router.post("/delete")
def delete_product(body: IdBody, admin=Depends(authorize("product", "delete"))):
    oid = to_object_id(body.id)
    if not database.products.soft_delete(oid, admin["_id"]):
        raise HTTPException(status_code=404, detail="Product not found")
    return success_response("Product deleted successfully")


@router.post("/restore")
def restore_product(body: IdBody, admin=Depends(authorize("product", "restore"))):
    oid = to_object_id(body.id)
    if not database.products.restore(oid):
        raise HTTPException(status_code=404, detail="Product not found")
    return success_response("Product restored successfully")


@router.post("/list")
def list_products(body: Optional[ProductListBody] = None):
    body = body or ProductListBody()
    filt: Dict[str, Any] = {}
    if body.search.strip():
        pattern = re.escape(body.search.strip())
        filt["$or"] = [
            {"title": {"$regex": pattern, "$options": "i"}},
            {"slug": {"$regex": pattern, "$options": "i"}},
        ]
    if body.category != "all":
        filt["category"] = {"$in": _category_scope(to_object_id(body.category, "category"))}

    docs, total = database.products.paginate(
        filt, body.page, body.size, sort=[("created_at", -1)], projection=LIST_PROJECTION
    )
    category_ids = list({d["category"] for d in docs if d.get("category")})
    categories = {c["_id"]: c for c in database.collection("category").find({"_id": {"$in": category_ids}})}
    for d in docs:
        d["category"] = categories.get(d.get("category"))
    return success_response("Fetched successfully", [serialize_doc(d) for d in docs], page_info(body.page, body.size, total))


@router.post("/list/deleted")
def list_deleted_products(body: Optional[PageBody] = None, admin=Depends(authorize("product", "list_deleted"))):
    body = body or PageBody()
    docs, total = database.products.paginate({}, body.page, body.size, deleted=True)
    return success_response("Fetched deleted products", [serialize_doc(d) for d in docs], page_info(body.page, body.size, total))


@router.get("/{product_id}")
def get_product(product_id: str, user=Depends(authorize("product", "read"))):
    oid = to_object_id(product_id)
    product = fetch_or_404(database.products, oid, "Product")
    if product.get("category"):
        product["category"] = database.collection("category").find_one({"_id": product["category"]})
    creator = database.collection("user").find_one({"_id": product.get("created_by")})
    detail = database.collection("product_detail").find_one({"product_id": oid})

    data = serialize_doc(product)
    data["created_by"] = public_user(creator)
    data["detail"] = serialize_doc(detail) or {}
    return success_response("Fetched successfully", data)
