"""
Cart arithmetic and order pricing.

Everything here works on plain documents and touches no database, so the
routers decide what to load and persist.
"""
from typing import List

import config


class StockExceeded(Exception):
    def __init__(self, available: int):
        self.available = available
        super().__init__(f"Only {available} items available in stock")


def unit_price(product: dict) -> float:
    return product.get("discount_price") or product["price"]


def apply_cart_delta(items: List[dict], product_id, delta: int, stock: int) -> List[dict]:
    """Return a new item list with `delta` added to the line for `product_id`.

    Raises StockExceeded when the resulting quantity would pass `stock`; the
    input list is never modified. A line that ends at zero or below is dropped.
    """
    items = [dict(item) for item in items]
    index = next((i for i, item in enumerate(items) if item["product"] == product_id), None)
    current = items[index]["quantity"] if index is not None else 0
    new_qty = current + delta

    if new_qty > stock:
        raise StockExceeded(stock)

    if new_qty <= 0:
        if index is not None:
            items.pop(index)
    elif index is not None:
        items[index]["quantity"] = new_qty
    else:
        items.append({"product": product_id, "quantity": new_qty})
    return items


def cart_total(lines: List[dict]) -> float:
    # lines carry the resolved product document under "product"
    return sum(unit_price(line["product"]) * line["quantity"] for line in lines)


def snapshot_items(lines: List[dict]) -> List[dict]:
    """Freeze product title, thumbnail and price into order items."""
    items = []
    for line in lines:
        product = line["product"]
        price = unit_price(product)
        detail = product.get("detail")
        if isinstance(detail, dict):
            detail = detail.get("_id")
        items.append(
            {
                "product": product["_id"],
                "product_detail": detail,
                "title": product["title"],
                "thumbnail": product.get("thumbnail") or "",
                "price": price,
                "quantity": line["quantity"],
                "subtotal": price * line["quantity"],
            }
        )
    return items


def compute_pricing(items: List[dict], shipping_fee: float = config.SHIPPING_FEE, tax_rate: float = config.TAX_RATE) -> dict:
    items_total = sum(item["subtotal"] for item in items)
    tax = round(items_total * tax_rate, 2)
    return {
        "items_total": items_total,
        "shipping_fee": shipping_fee,
        "tax": tax,
        "discount": 0,
        "grand_total": items_total + shipping_fee + tax,
    }
