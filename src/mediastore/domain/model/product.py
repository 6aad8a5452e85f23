"""Product aggregate.

Products are owned by the catalog. The fulfillment core only cares about
the fields that take part in stock and price rules: actual stock, the
selling price and the base value that bounds it.
"""

from __future__ import annotations

from dataclasses import dataclass

from mediastore.domain.exceptions import InventoryError, ValidationError
from mediastore.domain.model.value_objects import Money


@dataclass
class Product:
    """A product in the catalog.

    ``stock`` is the physical (actual) quantity on hand. Reservations never
    touch it; only a confirmed reservation or an explicit stock correction
    does, and both go through the reservation ledger.
    """

    id: str
    name: str
    stock: int
    price: Money
    value: Money

    def decrement_stock(self, quantity: int) -> None:
        if quantity <= 0:
            raise InventoryError("Stock decrement must be positive")
        if quantity > self.stock:
            raise InventoryError(
                f"Cannot remove {quantity} units of {self.name} "
                f"- only {self.stock} in stock"
            )
        self.stock -= quantity

    def increment_stock(self, quantity: int) -> None:
        if quantity <= 0:
            raise InventoryError("Stock increment must be positive")
        self.stock += quantity

    def set_stock(self, quantity: int) -> None:
        if quantity < 0:
            raise ValidationError("Stock quantity cannot be negative")
        self.stock = quantity

    def update_price(self, new_price: Money) -> None:
        """Change the selling price.

        Existing orders are unaffected because they snapshot the unit
        price at checkout.
        """
        if new_price.amount <= 0:
            raise ValidationError("Product price must be greater than zero")
        self.price = new_price

    def rename(self, name: str) -> None:
        if not name or not name.strip():
            raise ValidationError("Product name is required")
        self.name = name.strip()
