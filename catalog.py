import re
from typing import Any, Dict, List, Optional

import database
from errors import validation_failed

PRICE_CEILING = 999999


def serialize_product(doc: dict) -> dict:
    created = doc.get("created_at")
    updated = doc.get("updated_at")
    return {
        "id": str(doc["_id"]),
        "name": doc.get("name"),
        "description": doc.get("description"),
        "price": doc.get("price"),
        "category": doc.get("category"),
        "stock": doc.get("stock", 0),
        "inStock": doc.get("in_stock", False),
        "rating": doc.get("rating", 0),
        "reviewCount": doc.get("review_count", 0),
        "image": doc.get("image"),
        "createdAt": created.isoformat() if created else None,
        "updatedAt": updated.isoformat() if updated else None,
    }


def _number(name: str, raw: Optional[str], default: float) -> float:
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise validation_failed([{"field": name, "message": "Must be a number"}])


def build_product_filter(
    search: Optional[str] = None,
    category: Optional[str] = None,
    in_stock: Optional[str] = None,
    min_rating: Optional[str] = None,
    price_min: Optional[str] = None,
    price_max: Optional[str] = None,
) -> Dict[str, Any]:
    filt: Dict[str, Any] = {}
    if search:
        pattern = re.escape(search)
        filt["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
        ]
    if category and category != "All":
        filt["category"] = category
    if in_stock == "true":
        filt["in_stock"] = True

    rating = _number("minRating", min_rating, 0)
    if rating > 0:
        filt["rating"] = {"$gte": rating}

    low = _number("priceMin", price_min, 0)
    high = _number("priceMax", price_max, PRICE_CEILING)
    price_cond: Dict[str, Any] = {}
    if low > 0:
        price_cond["$gte"] = low
    if high < PRICE_CEILING:
        price_cond["$lte"] = high
    if price_cond:
        filt["price"] = price_cond
    return filt


def list_products(filt: Optional[dict] = None) -> List[dict]:
    cursor = database.get_collection("product").find(filt or {}).sort("created_at", -1)
    return [serialize_product(p) for p in cursor]


def get_product(product_id: str) -> Optional[dict]:
    doc = database.find_by_id("product", product_id)
    return serialize_product(doc) if doc else None
