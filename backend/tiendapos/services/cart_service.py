"""
In-memory cart for one in-progress sale.

WHY: The cart is transient operator state. Nothing is persisted until
sales_service.commit_sale, so abandoning a cart is always safe.

POLICY:
- Adding a product already in the cart increments its quantity
- adjust_quantity never removes a line; a step that would reach zero is a no-op
- set_quantity(0) is a removal request and needs confirmed=True
- A line total never exceeds MAX_AMOUNT
- remove_item always removes

Single operator, single thread: no locking.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..validation import MAX_AMOUNT, NotFoundError, ValidationError, coerce_int


class RemovalConfirmationRequired(ValidationError):
    """set_quantity(..., 0) without confirmation."""
    def __init__(self, product_id: int):
        super().__init__("Setting quantity to 0 removes the item; confirmation required")
        self.product_id = product_id


@dataclass
class CartItem:
    """Product snapshot plus quantity (qty >= 1)."""
    product_id: int
    name: str
    price: int
    qty: int = 1
    icon: str | None = None
    stock: int | None = None

    @property
    def line_total(self) -> int:
        return self.price * self.qty

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "price": self.price,
            "qty": self.qty,
            "icon": self.icon,
            "stock": self.stock,
            "line_total": self.line_total,
        }


def _snapshot(product: Any) -> CartItem:
    # Accepts Product rows or anything exposing the same attributes
    return CartItem(
        product_id=product.id,
        name=product.name,
        price=product.price,
        icon=getattr(product, "icon", None),
        stock=getattr(product, "stock", None),
    )


def _check_line_bound(item: CartItem, qty: int) -> None:
    # line_total must fit a money column
    limit = MAX_AMOUNT // item.price if item.price > 0 else MAX_AMOUNT
    if qty > limit:
        raise ValidationError(f"qty cannot exceed {limit} for this product")

class Cart:
    """Ordered product-id -> CartItem mapping; insertion order is display order."""

    def __init__(self) -> None:
        self._items: dict[int, CartItem] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items.values()))

    def __contains__(self, product_id: int) -> bool:
        return product_id in self._items

    @property
    def is_empty(self) -> bool:
        return not self._items

    @property
    def items(self) -> list[CartItem]:
        return list(self._items.values())

    def get(self, product_id: int) -> CartItem:
        item = self._items.get(product_id)
        if item is None:
            raise NotFoundError(f"Product {product_id} is not in the cart")
        return item

    def add_item(self, product: Any) -> CartItem:
        existing = self._items.get(product.id)
        if existing is not None:
            _check_line_bound(existing, existing.qty + 1)
            existing.qty += 1
            return existing
        item = _snapshot(product)
        self._items[item.product_id] = item
        return item

    def set_quantity(self, product_id: int, new_qty: Any, *, confirmed: bool = False) -> CartItem | None:
        """
        Absolute quantity set.

        Returns the updated item, or None when a confirmed zero removed it.
        """
        qty = coerce_int(new_qty, "qty")
        if qty < 0:
            raise ValidationError("qty must be >= 0")
        item = self.get(product_id)
        if qty == 0:
            if confirmed is not True:
                raise RemovalConfirmationRequired(product_id)
            self.remove_item(product_id)
            return None
        _check_line_bound(item, qty)
        item.qty = qty
        return item

    def adjust_quantity(self, product_id: int, delta: Any) -> CartItem:
        step = coerce_int(delta, "delta")
        item = self.get(product_id)
        if item.qty + step > 0:
            _check_line_bound(item, item.qty + step)
            item.qty += step
        return item

    def remove_item(self, product_id: int) -> CartItem:
        item = self._items.pop(product_id, None)
        if item is None:
            raise NotFoundError(f"Product {product_id} is not in the cart")
        return item

    def clear(self) -> None:
        self._items.clear()

    def total(self) -> int:
        return sum(item.price * item.qty for item in self._items.values())

    def to_dict(self) -> dict:
        return {
            "items": [item.to_dict() for item in self._items.values()],
            "item_count": sum(item.qty for item in self._items.values()),
            "total": self.total(),
        }
