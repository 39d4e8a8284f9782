"""
MongoDB access for the shop.

Each collection is named after the lowercase entity: "user", "product",
"order", "cart". Modules look collections up through get_collection() at
call time so the database handle can be swapped (tests use mongomock).
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient

import config

logger = logging.getLogger(__name__)

client = MongoClient(config.DATABASE_URL)
db = client[config.DATABASE_NAME]


def get_collection(name: str):
    return db[name]


def now() -> datetime:
    return datetime.now(timezone.utc)


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a document with created_at/updated_at stamps and return its id."""
    if isinstance(data, BaseModel):
        data = data.model_dump()
    doc = dict(data)
    stamp = now()
    doc.setdefault("created_at", stamp)
    doc["updated_at"] = stamp
    result = get_collection(collection_name).insert_one(doc)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None) -> List[dict]:
    cursor = get_collection(collection_name).find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def parse_object_id(value: str) -> Optional[ObjectId]:
    """Malformed ids are treated as "no such document"."""
    if not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


def find_by_id(collection_name: str, value: str) -> Optional[Dict[str, Any]]:
    oid = parse_object_id(value)
    if oid is None:
        return None
    return get_collection(collection_name).find_one({"_id": oid})


def ensure_indexes() -> None:
    get_collection("user").create_index([("email", ASCENDING)], unique=True)
    get_collection("order").create_index([("user_id", ASCENDING), ("created_at", ASCENDING)])
    get_collection("cart").create_index([("session_id", ASCENDING)], unique=True)
    logger.info("Database indexes ensured")
