"""
MongoDB access for the storefront.

`db` stays None until DATABASE_URL and DATABASE_NAME are configured. Helpers
look the handle up at call time, so it can be swapped for another database
object (the test-suite uses mongomock).

Soft-deletable collections share one lifecycle field, `status`
("active" | "deleted"), plus `deleted_at` / `deleted_by`; the Repository
class below is the only place that flips it.
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient

import config

logger = logging.getLogger(__name__)

ACTIVE = "active"
DELETED = "deleted"

client = None
db = None

if config.DATABASE_URL and config.DATABASE_NAME:
    client = MongoClient(config.DATABASE_URL)
    db = client[config.DATABASE_NAME]
    logger.info(f"MongoDB client created for database: {config.DATABASE_NAME}")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def collection(name: str):
    if db is None:
        raise RuntimeError("Database is not configured")
    return db[name]


def session_kwargs(session) -> Dict[str, Any]:
    return {"session": session} if session is not None else {}


def create_document(collection_name: str, data: Union[BaseModel, dict], session=None) -> str:
    """Insert a document, stamping created_at/updated_at. Returns the new id as a string."""
    if isinstance(data, BaseModel):
        doc = data.model_dump()
    else:
        doc = dict(data)
    now = utcnow()
    if not doc.get("created_at"):
        doc["created_at"] = now
    doc["updated_at"] = now
    result = collection(collection_name).insert_one(doc, **session_kwargs(session))
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None) -> List[dict]:
    cursor = collection(collection_name).find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


@contextmanager
def transaction():
    """Yield a session bound to a transaction, or None when transactions are off.

    The transaction commits when the block exits normally and aborts when it raises.
    """
    if client is None or not config.MONGO_TRANSACTIONS:
        yield None
        return
    with client.start_session() as session:
        with session.start_transaction():
            yield session


class Repository:
    """Soft-delete aware access to a single collection."""

    def __init__(self, name: str):
        self.name = name

    @property
    def collection(self):
        return collection(self.name)

    def get(self, oid: ObjectId, include_deleted: bool = False, session=None) -> Optional[dict]:
        filt: Dict[str, Any] = {"_id": oid}
        if not include_deleted:
            filt["status"] = ACTIVE
        return self.collection.find_one(filt, **session_kwargs(session))

    def find_one(self, filt: dict, include_deleted: bool = False) -> Optional[dict]:
        query = dict(filt)
        if not include_deleted:
            query["status"] = ACTIVE
        return self.collection.find_one(query)

    def insert(self, data: Union[BaseModel, dict], session=None) -> ObjectId:
        doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
        doc["status"] = ACTIVE
        doc["deleted_at"] = None
        doc["deleted_by"] = None
        return ObjectId(create_document(self.name, doc, session=session))

    def update(self, oid: ObjectId, fields: dict, session=None) -> bool:
        update = {**fields, "updated_at": utcnow()}
        res = self.collection.update_one({"_id": oid}, {"$set": update}, **session_kwargs(session))
        return res.matched_count > 0

    def paginate(
        self,
        filt: dict,
        page: int,
        size: int,
        deleted: bool = False,
        sort: Optional[List[Tuple[str, int]]] = None,
        projection: Optional[dict] = None,
    ) -> Tuple[List[dict], int]:
        query = {**filt, "status": DELETED if deleted else ACTIVE}
        cursor = self.collection.find(query, projection)
        if sort:
            cursor = cursor.sort(sort)
        docs = list(cursor.skip((page - 1) * size).limit(size))
        total = self.collection.count_documents(query)
        return docs, total

    def soft_delete(self, oid: ObjectId, actor_id: Optional[ObjectId]) -> bool:
        now = utcnow()
        res = self.collection.update_one(
            {"_id": oid, "status": ACTIVE},
            {"$set": {"status": DELETED, "deleted_at": now, "deleted_by": actor_id, "updated_at": now}},
        )
        if res.matched_count:
            logger.info(f"Soft deleted {self.name} {oid} by {actor_id}")
        return res.matched_count > 0

    def restore(self, oid: ObjectId) -> bool:
        res = self.collection.update_one(
            {"_id": oid, "status": DELETED},
            {"$set": {"status": ACTIVE, "deleted_at": None, "deleted_by": None, "updated_at": utcnow()}},
        )
        if res.matched_count:
            logger.info(f"Restored {self.name} {oid}")
        return res.matched_count > 0


users = Repository("user")
brands = Repository("brand")
categories = Repository("category")
products = Repository("product")
ratings = Repository("rating")


def ensure_indexes():
    collection("user").create_index("email", unique=True)
    collection("user").create_index("mobile", unique=True)
    collection("profile").create_index("user", unique=True)
    collection("brand").create_index("slug")
    collection("category").create_index("name", unique=True)
    collection("category").create_index("slug", unique=True)
    collection("product").create_index("slug", unique=True)
    collection("product_detail").create_index("product_id", unique=True)
    collection("cart").create_index("user", unique=True)
    collection("order").create_index([("user", ASCENDING), ("created_at", DESCENDING)])
    collection("rating").create_index([("product_id", ASCENDING), ("user_id", ASCENDING)], unique=True)
    logger.info("Database indexes verified/created.")
