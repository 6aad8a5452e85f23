"""Data Transfer Objects: plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from mediastore.domain.model.order import Order, StateTransitionRecord


@dataclass(frozen=True)
class CheckoutItemSpec:
    """Input: one cart line (product id + quantity)."""

    product_id: str
    quantity: int


@dataclass(frozen=True)
class OrderLineItemDTO:
    """Output: a single line item as displayed to the user."""

    product_id: str
    product_name: str
    quantity: int
    unit_price: str  # formatted, e.g. "15,000.00 VND"
    line_total: str


@dataclass(frozen=True)
class OrderDTO:
    """Output: a complete order as displayed to the user."""

    id: int
    customer_id: str
    status: str
    items: list[OrderLineItemDTO]
    total: str
    created_at: str
    reservation_id: str | None = None


@dataclass(frozen=True)
class PlaceOrderResult:
    """Output of checkout: either an order or the reasons there is none."""

    order: OrderDTO | None
    message: str
    product_messages: list[str] = field(default_factory=list)
    suggested_actions: dict[str, str] = field(default_factory=dict)

    @property
    def placed(self) -> bool:
        return self.order is not None


@dataclass(frozen=True)
class InventoryLineDTO:
    product_id: str
    product_name: str
    actual: int
    reserved: int
    available: int
    low_stock: bool


@dataclass(frozen=True)
class TransitionDTO:
    transition_id: str
    from_status: str
    to_status: str
    performed_by: str
    timestamp: str
    reason: str
    notes: str
    success: bool


def order_to_dto(order: Order) -> OrderDTO:
    return OrderDTO(
        id=order.id,  # type: ignore[arg-type]
        customer_id=order.customer_id,
        status=order.status.value,
        items=[
            OrderLineItemDTO(
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity.value,
                unit_price=str(item.unit_price),
                line_total=str(item.line_total),
            )
            for item in order.items
        ],
        total=str(order.total),
        created_at=order.created_at.strftime("%Y-%m-%d %H:%M UTC"),
        reservation_id=order.reservation_id,
    )


def transition_to_dto(record: StateTransitionRecord) -> TransitionDTO:
    return TransitionDTO(
        transition_id=record.transition_id,
        from_status=record.from_status.value if record.from_status else "-",
        to_status=record.to_status.value,
        performed_by=record.performed_by,
        timestamp=record.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC"),
        reason=record.reason,
        notes=record.notes,
        success=record.success,
    )
