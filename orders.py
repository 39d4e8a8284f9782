"""
Order lifecycle: checkout, scoped reads and guarded cancellation.

PENDING -> PROCESSING -> SHIPPED -> DELIVERED, and PENDING/PROCESSING ->
CANCELLED. Only the cancel transition is exposed over the API; fulfilment
moves orders forward out of band.
"""

import logging
from typing import Dict, List, Optional

from bson import ObjectId
from pymongo import ReturnDocument

import database
from errors import INVALID_STATUS_TRANSITION, ApiError, not_found, validation_failed
from schemas import CANCELLABLE_STATUSES, ORDER_STATUSES, CustomerInfo, Order, OrderCreateRequest, OrderItem

logger = logging.getLogger(__name__)


def _iso(value):
    return value.isoformat() if value else None


def mask_payment(payment: Optional[dict]) -> dict:
    """Payment details are a test stub: keep the last four card digits, never the CVV."""
    masked = {k: v for k, v in (payment or {}).items() if k.lower() != "cvv"}
    card = masked.get("cardNumber")
    if card:
        digits = "".join(ch for ch in str(card) if ch.isdigit())
        masked["cardNumber"] = "**** **** **** " + digits[-4:]
    return masked


def resolve_status(raw: Optional[str]) -> str:
    if not raw:
        return "PENDING"
    status = raw.strip().upper()
    if status not in ORDER_STATUSES:
        raise validation_failed(
            [{"field": "status", "message": f"Must be one of {', '.join(ORDER_STATUSES)}"}]
        )
    return status


def build_customer_info(payload: OrderCreateRequest, user: dict) -> dict:
    source = payload.shipping or payload.customer_info or {}
    info = CustomerInfo(
        name=source.get("fullName") or source.get("name") or user["name"],
        email=source.get("email") or user["email"],
        phone=source.get("phone") or "",
        address=source.get("address") or "",
        city=source.get("city") or "",
        zip_code=source.get("zipCode") or "",
        country=source.get("country") or "",
    )
    return info.model_dump(by_alias=True)


def build_items(payload: OrderCreateRequest, order_id: str) -> List[OrderItem]:
    items = []
    errors = []
    for index, item in enumerate(payload.items):
        product = item.product
        product_id = (product.id if product else None) or item.product_id or item.id
        price = product.price if product and product.price is not None else item.price
        if not product_id:
            errors.append({"field": f"items.{index}.productId", "message": "Product id is required"})
        if price is None:
            errors.append({"field": f"items.{index}.price", "message": "Price is required"})
        if product_id and price is not None:
            items.append(
                OrderItem(
                    id=str(ObjectId()),
                    order_id=order_id,
                    product_id=product_id,
                    quantity=item.quantity,
                    price=price,
                )
            )
    if errors:
        raise validation_failed(errors)
    return items


def submitted_total(payload: OrderCreateRequest) -> float:
    if payload.totals and payload.totals.total:
        return payload.totals.total
    return payload.total_amount or 0


def create_order(user: dict, payload: OrderCreateRequest) -> dict:
    order_oid = ObjectId()
    order_id = str(order_oid)
    items = build_items(payload, order_id)
    total = submitted_total(payload)

    line_sum = round(sum(i.price * i.quantity for i in items), 2)
    if items and line_sum != round(total, 2):
        logger.info("Order %s total %.2f differs from line sum %.2f", order_id, total, line_sum)

    shipping = dict(payload.shipping or {})
    shipping["payment"] = mask_payment(payload.payment)

    order = Order(
        user_id=str(user["_id"]),
        status=resolve_status(payload.status),
        total_amount=total,
        customer_info=build_customer_info(payload, user),
        shipping=shipping,
        items=items,
    )
    doc = order.model_dump()
    doc["_id"] = order_oid
    stamp = database.now()
    doc["created_at"] = stamp
    doc["updated_at"] = stamp
    # order and its items live in one document, so this insert is all-or-nothing
    database.get_collection("order").insert_one(doc)
    logger.info("Order %s created for user %s with %d items", order_id, order.user_id, len(items))
    return serialize_order(doc)


def _products_by_id(product_ids: List[str]) -> Dict[str, dict]:
    oids = [ObjectId(pid) for pid in set(product_ids) if ObjectId.is_valid(pid)]
    if not oids:
        return {}
    cursor = database.get_collection("product").find({"_id": {"$in": oids}})
    return {str(p["_id"]): p for p in cursor}


def _users_by_id(user_ids: List[str]) -> Dict[str, dict]:
    oids = [ObjectId(uid) for uid in set(user_ids) if ObjectId.is_valid(uid)]
    if not oids:
        return {}
    cursor = database.get_collection("user").find({"_id": {"$in": oids}})
    return {str(u["_id"]): u for u in cursor}


def serialize_order(doc: dict, users: Optional[Dict[str, dict]] = None, products: Optional[Dict[str, dict]] = None) -> dict:
    items = doc.get("items", [])
    if products is None:
        products = _products_by_id([i["product_id"] for i in items])
    if users is None:
        users = _users_by_id([doc["user_id"]])

    owner = users.get(doc["user_id"])
    out_items = []
    for item in items:
        product = products.get(item["product_id"])
        out_items.append(
            {
                "id": item["id"],
                "orderId": item["order_id"],
                "productId": item["product_id"],
                "quantity": item["quantity"],
                "price": item["price"],
                "product": {
                    "id": str(product["_id"]),
                    "name": product.get("name"),
                    "price": product.get("price"),
                    "image": product.get("image"),
                }
                if product
                else None,
            }
        )
    return {
        "id": str(doc["_id"]),
        "userId": doc["user_id"],
        "status": doc["status"],
        "totalAmount": doc.get("total_amount", 0),
        "customerInfo": doc.get("customer_info", {}),
        "shipping": doc.get("shipping", {}),
        "createdAt": _iso(doc.get("created_at")),
        "updatedAt": _iso(doc.get("updated_at")),
        "user": {"id": str(owner["_id"]), "name": owner["name"], "email": owner["email"]} if owner else None,
        "items": out_items,
    }


def _scope(user: dict, extra: Optional[dict] = None) -> dict:
    filt = dict(extra or {})
    if user.get("role") != "ADMIN":
        filt["user_id"] = str(user["_id"])
    return filt


def list_orders(user: dict) -> List[dict]:
    docs = list(database.get_collection("order").find(_scope(user)).sort("created_at", -1))
    users = _users_by_id([d["user_id"] for d in docs])
    products = _products_by_id([i["product_id"] for d in docs for i in d.get("items", [])])
    return [serialize_order(d, users, products) for d in docs]


def get_order(user: dict, order_id: str) -> dict:
    oid = database.parse_object_id(order_id)
    doc = database.get_collection("order").find_one(_scope(user, {"_id": oid})) if oid else None
    if not doc:
        raise not_found("Order")
    return serialize_order(doc)


def cancel_order(user: dict, order_id: str) -> dict:
    oid = database.parse_object_id(order_id)
    if oid is None:
        raise not_found("Order")
    orders = database.get_collection("order")
    updated = orders.find_one_and_update(
        _scope(user, {"_id": oid, "status": {"$in": CANCELLABLE_STATUSES}}),
        {"$set": {"status": "CANCELLED", "updated_at": database.now()}},
        return_document=ReturnDocument.AFTER,
    )
    if updated:
        logger.info("Order %s cancelled by user %s", order_id, user["_id"])
        return serialize_order(updated)

    current = orders.find_one(_scope(user, {"_id": oid}))
    if not current:
        raise not_found("Order")
    logger.warning("Rejected cancel of order %s in status %s", order_id, current["status"])
    raise ApiError(
        409,
        INVALID_STATUS_TRANSITION,
        f"Cannot cancel order with status: {current['status']}. "
        "Only pending and processing orders can be cancelled.",
    )
