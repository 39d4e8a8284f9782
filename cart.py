"""
Cart state holder.

The storefront keeps the cart in browser local storage under STORAGE_KEY as a
JSON list of {id, product, quantity}. Cart reads and writes that same shape,
so a cart saved by one session reloads unchanged in the next. The server-side
copy behind /api/cart stores the same list per X-Session-Id, last write wins.
"""

import json
import logging
import time
from dataclasses import asdict, dataclass
from typing import List, Optional

import database

logger = logging.getLogger(__name__)

STORAGE_KEY = "qalab-cart"


@dataclass
class CartLine:
    id: str
    product: dict
    quantity: int

    @property
    def subtotal(self) -> float:
        return float(self.product.get("price", 0)) * self.quantity


class Cart:
    def __init__(self, lines: Optional[List[CartLine]] = None):
        self.lines: List[CartLine] = list(lines or [])

    def _find_product(self, product_id: str) -> Optional[CartLine]:
        for line in self.lines:
            if str(line.product.get("id")) == str(product_id):
                return line
        return None

    def add(self, product: dict, quantity: int = 1) -> CartLine:
        line = self._find_product(product["id"])
        if line:
            line.quantity += quantity
            return line
        line = CartLine(id=f"cart_{product['id']}_{int(time.time() * 1000)}", product=dict(product), quantity=quantity)
        self.lines.append(line)
        return line

    def remove(self, line_id: str) -> None:
        self.lines = [line for line in self.lines if line.id != line_id]

    def update_quantity(self, line_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove(line_id)
            return
        for line in self.lines:
            if line.id == line_id:
                line.quantity = quantity

    def clear(self) -> None:
        self.lines = []

    def total(self) -> float:
        return sum(line.subtotal for line in self.lines)

    def count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def checkout_items(self) -> List[dict]:
        """Line items in the shape POST /api/orders accepts."""
        return [
            {"productId": str(line.product["id"]), "quantity": line.quantity, "price": line.product.get("price", 0)}
            for line in self.lines
        ]

    def to_list(self) -> List[dict]:
        return [asdict(line) for line in self.lines]

    def dumps(self) -> str:
        return json.dumps(self.to_list())

    @classmethod
    def from_list(cls, items: List[dict]) -> "Cart":
        return cls([CartLine(id=i["id"], product=dict(i["product"]), quantity=int(i["quantity"])) for i in items])

    @classmethod
    def loads(cls, text: Optional[str]) -> "Cart":
        if not text:
            return cls()
        try:
            return cls.from_list(json.loads(text))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Discarding unreadable saved cart: %s", e)
            return cls()

    def summary(self) -> dict:
        return {"items": self.to_list(), "total": round(self.total(), 2), "count": self.count()}


def load_session_cart(session_id: str) -> Cart:
    doc = database.get_collection("cart").find_one({"session_id": session_id})
    return Cart.from_list(doc["items"]) if doc else Cart()


def save_session_cart(session_id: str, cart: Cart) -> None:
    database.get_collection("cart").update_one(
        {"session_id": session_id},
        {"$set": {"session_id": session_id, "items": cart.to_list(), "updated_at": database.now()}},
        upsert=True,
    )


def clear_session_cart(session_id: str) -> None:
    database.get_collection("cart").delete_one({"session_id": session_id})
