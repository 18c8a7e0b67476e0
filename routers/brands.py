import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

import database
from auth import authorize
from schemas import Brand as BrandSchema, IdBody, PageBody, Seo
from utils import fetch_or_404, page_info, serialize_doc, slugify, success_response, to_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/brands", tags=["brands"])

LIST_PROJECTION = {"name": 1, "slug": 1, "logo": 1, "website": 1, "created_at": 1}


class BrandCreateBody(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    website: Optional[str] = None
    logo: Optional[str] = None
    seo: Optional[Seo] = None


class BrandUpdateFields(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    website: Optional[str] = None
    logo: Optional[str] = None
    seo: Optional[Seo] = None


class BrandUpdateBody(BaseModel):
    id: str
    update: BrandUpdateFields = BrandUpdateFields()


def _slug_taken(slug: str, exclude_id=None) -> bool:
    filt = {"slug": slug}
    if exclude_id is not None:
        filt["_id"] = {"$ne": exclude_id}
    return database.brands.find_one(filt) is not None


@router.post("/create")
def create_brand(body: BrandCreateBody, admin=Depends(authorize("brand", "create"))):
    slug = slugify(body.name)
    if not slug:
        raise HTTPException(status_code=400, detail="Brand name is required")
    if _slug_taken(slug):
        raise HTTPException(status_code=400, detail="Brand already exists")
    brand = BrandSchema(**body.model_dump(), slug=slug, created_by=admin["_id"])
    oid = database.brands.insert(brand)
    logger.info(f"Brand {slug} created by {admin['_id']}")
    return success_response("Brand created successfully", serialize_doc(database.brands.get(oid)))


@router.post("/update")
def update_brand(body: BrandUpdateBody, admin=Depends(authorize("brand", "update"))):
    oid = to_object_id(body.id)
    fetch_or_404(database.brands, oid, "Brand")
    fields = body.update.model_dump(exclude_none=True)
    if "name" in fields:
        fields["slug"] = slugify(fields["name"])
        if _slug_taken(fields["slug"], exclude_id=oid):
            raise HTTPException(status_code=400, detail="Brand already exists")
    if fields:
        database.brands.update(oid, fields)
    return success_response("Brand updated successfully", serialize_doc(database.brands.get(oid)))


@router.post("/delete")
def delete_brand(body: IdBody, admin=Depends(authorize("brand", "delete"))):
    oid = to_object_id(body.id)
    if not database.brands.soft_delete(oid, admin["_id"]):
        raise HTTPException(status_code=404, detail="Brand not found")
    return success_response("Brand deleted successfully")


@router.post("/restore")
def restore_brand(body: IdBody, admin=Depends(authorize("brand", "restore"))):
    oid = to_object_id(body.id)
    brand = fetch_or_404(database.brands, oid, "Brand", include_deleted=True)
    if brand["status"] == database.DELETED and _slug_taken(brand["slug"], exclude_id=oid):
        raise HTTPException(status_code=400, detail="An active brand with this name already exists")
    if not database.brands.restore(oid):
        raise HTTPException(status_code=400, detail="Brand is not deleted")
    return success_response("Brand restored successfully")


@router.post("/list")
def list_brands(body: Optional[PageBody] = None):
    body = body or PageBody()
    filt = {}
    if body.search.strip():
        pattern = re.escape(body.search.strip())
        filt["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"slug": {"$regex": pattern, "$options": "i"}},
        ]
    docs, total = database.brands.paginate(filt, body.page, body.size, projection=LIST_PROJECTION)
    return success_response("Fetched successfully", [serialize_doc(d) for d in docs], page_info(body.page, body.size, total))


@router.post("/list/deleted")
def list_deleted_brands(body: Optional[PageBody] = None, admin=Depends(authorize("brand", "list_deleted"))):
    body = body or PageBody()
    docs, total = database.brands.paginate({}, body.page, body.size, deleted=True)
    return success_response("Fetched deleted brands", [serialize_doc(d) for d in docs], page_info(body.page, body.size, total))


@router.get("/{slug}")
def get_brand_by_slug(slug: str):
    brand = database.brands.find_one({"slug": slug})
    if not brand:
        raise HTTPException(status_code=404, detail="Brand not found")
    return success_response("Fetched successfully", serialize_doc(brand))
