import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

import database
from auth import authorize
from schemas import Category as CategorySchema, IdBody, PageBody
from utils import fetch_or_404, page_info, serialize_doc, slugify, success_response, to_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/categories", tags=["categories"])

TREE_ORDER = [("sort_order", 1), ("name", 1)]


class CategoryCreateBody(BaseModel):
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    parent_category: Optional[str] = None
    is_featured: bool = False
    sort_order: int = 0


class CategoryUpdateFields(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    parent_category: Optional[str] = None
    is_featured: Optional[bool] = None
    sort_order: Optional[int] = None


class CategoryUpdateBody(BaseModel):
    id: str
    update: CategoryUpdateFields = CategoryUpdateFields()


def _resolve_parent(value: Optional[str]):
    if not value:
        return None
    parent_id = to_object_id(value, "parentCategory")
    if not database.categories.get(parent_id):
        raise HTTPException(status_code=400, detail="Parent category does not exist")
    return parent_id


def _ensure_unique(name: str, slug: str, exclude_id=None):
    filt = {"$or": [{"name": name}, {"slug": slug}]}
    if exclude_id is not None:
        filt["_id"] = {"$ne": exclude_id}
    if database.collection("category").find_one(filt):
        raise HTTPException(status_code=400, detail="Category with same name or slug already exists")


@router.post("/create", status_code=201)
def create_category(body: CategoryCreateBody, admin=Depends(authorize("category", "create"))):
    name = body.name.strip()
    slug = slugify(body.slug or name)
    _ensure_unique(name, slug)
    category = CategorySchema(
        name=name,
        slug=slug,
        description=body.description,
        image=body.image,
        parent_category=_resolve_parent(body.parent_category),
        is_featured=body.is_featured,
        sort_order=body.sort_order,
    )
    oid = database.categories.insert(category)
    logger.info(f"Category {slug} created by {admin['_id']}")
    return success_response("Category created successfully", serialize_doc(database.categories.get(oid)))


@router.post("/update")
def update_category(body: CategoryUpdateBody, admin=Depends(authorize("category", "update"))):
    oid = to_object_id(body.id)
    current = fetch_or_404(database.categories, oid, "Category")
    fields = body.update.model_dump(exclude_none=True)

    if "parent_category" in fields:
        parent_id = _resolve_parent(fields["parent_category"])
        if parent_id == oid:
            raise HTTPException(status_code=400, detail="A category cannot be its own parent")
        fields["parent_category"] = parent_id
    if "name" in fields:
        fields["name"] = fields["name"].strip()
        fields.setdefault("slug", fields["name"])
    if "slug" in fields:
        fields["slug"] = slugify(fields["slug"])
    if "name" in fields or "slug" in fields:
        _ensure_unique(fields.get("name", current["name"]), fields.get("slug", current["slug"]), exclude_id=oid)

    if fields:
        database.categories.update(oid, fields)
    return success_response("Category updated successfully", serialize_doc(database.categories.get(oid)))


@router.post("/delete")
def delete_category(body: IdBody, admin=Depends(authorize("category", "delete"))):
    oid = to_object_id(body.id)
    if not database.categories.soft_delete(oid, admin["_id"]):
        raise HTTPException(status_code=404, detail="Category not found")
    return success_response("Category deleted successfully")


@router.post("/restore")
def restore_category(body: IdBody, admin=Depends(authorize("category", "restore"))):
    oid = to_object_id(body.id)
    if not database.categories.restore(oid):
        raise HTTPException(status_code=404, detail="Category not found")
    return success_response("Category restored successfully")


@router.post("/list")
def list_categories(body: Optional[PageBody] = None):
    body = body or PageBody()
    filt = {}
    if body.search.strip():
        filt["name"] = {"$regex": re.escape(body.search.strip()), "$options": "i"}
    docs, total = database.categories.paginate(filt, body.page, body.size)
    return success_response("Fetched successfully", [serialize_doc(d) for d in docs], page_info(body.page, body.size, total))


@router.post("/list/deleted")
def list_deleted_categories(body: Optional[PageBody] = None, admin=Depends(authorize("category", "list_deleted"))):
    body = body or PageBody()
    docs, total = database.categories.paginate({}, body.page, body.size, deleted=True)
    return success_response("Fetched deleted categories", [serialize_doc(d) for d in docs], page_info(body.page, body.size, total))


@router.get("/with-subcategories")
def list_categories_with_subcategories():
    """Active root categories, each with its active direct children."""
    coll = database.collection("category")
    roots = list(coll.find({"parent_category": None, "status": database.ACTIVE}).sort(TREE_ORDER))
    children = coll.find(
        {"parent_category": {"$in": [r["_id"] for r in roots]}, "status": database.ACTIVE}
    ).sort(TREE_ORDER)

    grouped = {r["_id"]: [] for r in roots}
    for child in children:
        grouped[child["parent_category"]].append(
            {"_id": child["_id"], "name": child["name"], "slug": child["slug"], "image": child.get("image")}
        )

    tree = [
        {
            "_id": r["_id"],
            "name": r["name"],
            "slug": r["slug"],
            "image": r.get("image"),
            "sub_categories": grouped[r["_id"]],
        }
        for r in roots
    ]
    return success_response("Categories fetched successfully", [serialize_doc(c) for c in tree])


@router.get("/{category_id}")
def get_category(category_id: str, user=Depends(authorize("category", "read"))):
    oid = to_object_id(category_id)
    category = fetch_or_404(database.categories, oid, "Category")
    return success_response("Fetched successfully", serialize_doc(category))
