"""JSON-file-backed implementation of ProductRepository."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

from mediastore.domain.model.product import Product
from mediastore.domain.model.value_objects import DEFAULT_CURRENCY, Money
from mediastore.domain.repository.product_repository import ProductRepository
from mediastore.infrastructure.persistence.json_store import JsonFileStore


class JsonProductRepository(JsonFileStore, ProductRepository):

    def __init__(self, file_path: Path) -> None:
        super().__init__(file_path, empty={})

    # --- ProductRepository interface ------------------------------------------

    def get_by_id(self, product_id: str) -> Product | None:
        raw = self._load_raw().get(product_id)
        return self._to_domain(raw) if raw is not None else None

    def list_all(self) -> list[Product]:
        return [self._to_domain(raw) for raw in self._load_raw().values()]

    def save(self, product: Product) -> None:
        def change(products: dict) -> None:
            products[product.id] = self._to_raw(product)

        self._update_raw(change)

    def delete(self, product_id: str) -> None:
        self._update_raw(lambda products: products.pop(product_id, None))

    # --- Serialization helpers ------------------------------------------------

    @staticmethod
    def _to_raw(product: Product) -> dict:
        return {
            "id": product.id,
            "name": product.name,
            "stock": product.stock,
            "price": str(product.price.amount),
            "value": str(product.value.amount),
            "currency": product.price.currency,
        }

    @staticmethod
    def _to_domain(raw: dict) -> Product:
        currency = raw.get("currency", DEFAULT_CURRENCY)
        return Product(
            id=raw["id"],
            name=raw["name"],
            stock=raw["stock"],
            price=Money(Decimal(raw["price"]), currency),
            value=Money(Decimal(raw["value"]), currency),
        )
