import re
import unicodedata
from datetime import datetime
from typing import Any, Dict, Optional

from bson.objectid import ObjectId
from fastapi import HTTPException

PRIVATE_USER_FIELDS = ("password_hash", "reset_otp", "reset_otp_expire")


def _serialize_value(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return serialize_doc(value)
    if isinstance(value, list):
        return [_serialize_value(v) for v in value]
    return value


def serialize_doc(doc):
    """Make a Mongo document JSON friendly: `_id` becomes `id`, ObjectIds and datetimes become strings."""
    if not doc:
        return doc
    doc = dict(doc)
    out: Dict[str, Any] = {}
    _id = doc.pop("_id", None)
    if _id is not None:
        out["id"] = str(_id)
    for k, v in doc.items():
        out[k] = _serialize_value(v)
    return out


def public_user(doc):
    if not doc:
        return doc
    return serialize_doc({k: v for k, v in doc.items() if k not in PRIVATE_USER_FIELDS})


def to_object_id(value, label: str = "id") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if not value or not ObjectId.is_valid(value):
        raise HTTPException(status_code=400, detail=f"Invalid {label}")
    return ObjectId(value)


def slugify(text: str) -> str:
    text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode()
    text = re.sub(r"[^\w\s-]", "", text).strip().lower()
    return re.sub(r"[\s_-]+", "-", text).strip("-")


def fetch_or_404(repo, oid: ObjectId, label: str, include_deleted: bool = False) -> dict:
    doc = repo.get(oid, include_deleted=include_deleted)
    if not doc:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return doc


def success_response(message: str, data: Any = None, pagination: Optional[dict] = None) -> dict:
    return {"success": True, "message": message, "data": data, "pagination": pagination}


def error_response(message: str, error: Any = None) -> dict:
    return {"success": False, "message": message, "error": error}


def page_info(page: int, size: int, total: int) -> dict:
    return {"page": page, "size": size, "total": total}
