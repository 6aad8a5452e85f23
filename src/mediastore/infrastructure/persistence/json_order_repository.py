"""JSON-file-backed implementation of OrderRepository."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path

from mediastore.domain.model.order import Order, OrderLineItem, OrderStatus
from mediastore.domain.model.value_objects import DEFAULT_CURRENCY, Money, Quantity
from mediastore.domain.repository.order_repository import OrderRepository
from mediastore.infrastructure.persistence.json_store import JsonFileStore


class JsonOrderRepository(JsonFileStore, OrderRepository):

    def __init__(self, file_path: Path) -> None:
        super().__init__(file_path, empty=[])

    # --- OrderRepository interface --------------------------------------------

    def next_id(self) -> int:
        orders = self._load_raw()
        if not orders:
            return 1
        return max(o["id"] for o in orders) + 1

    def get_by_id(self, order_id: int) -> Order | None:
        for raw in self._load_raw():
            if raw["id"] == order_id:
                return self._to_domain(raw)
        return None

    def list_by_status(self, status: OrderStatus) -> list[Order]:
        return [
            self._to_domain(raw)
            for raw in self._load_raw()
            if raw["status"] == status.value
        ]

    def save(self, order: Order) -> None:
        def change(orders: list[dict]) -> None:
            if order.id is None:
                order.id = max((o["id"] for o in orders), default=0) + 1

            # Upsert: replace if exists, otherwise append
            for i, raw in enumerate(orders):
                if raw["id"] == order.id:
                    orders[i] = self._to_raw(order)
                    return
            orders.append(self._to_raw(order))

        self._update_raw(change)

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(order: Order) -> dict:
        return {
            "id": order.id,
            "customer_id": order.customer_id,
            "status": order.status.value,
            "reservation_id": order.reservation_id,
            "created_at": order.created_at.isoformat(),
            "updated_at": order.updated_at.isoformat() if order.updated_at else None,
            "items": [
                {
                    "product_id": item.product_id,
                    "product_name": item.product_name,
                    "quantity": item.quantity.value,
                    "unit_price": str(item.unit_price.amount),
                    "currency": item.unit_price.currency,
                }
                for item in order.items
            ],
        }

    @staticmethod
    def _to_domain(raw: dict) -> Order:
        items = [
            OrderLineItem(
                product_id=i["product_id"],
                product_name=i["product_name"],
                quantity=Quantity(i["quantity"]),
                unit_price=Money(Decimal(i["unit_price"]), i.get("currency", DEFAULT_CURRENCY)),
            )
            for i in raw["items"]
        ]
        updated_at = raw.get("updated_at")
        return Order(
            id=raw["id"],
            customer_id=raw["customer_id"],
            items=items,
            status=OrderStatus(raw["status"]),
            reservation_id=raw.get("reservation_id"),
            created_at=datetime.fromisoformat(raw["created_at"]),
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )
