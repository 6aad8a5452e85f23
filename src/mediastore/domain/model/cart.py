"""Shopping cart as handed to checkout."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CartItem:
    product_id: str
    quantity: int


@dataclass
class Cart:
    cart_id: str
    items: list[CartItem] = field(default_factory=list)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)
