"""Order aggregate and its lifecycle graph.

The Order owns its line items and its status. Status only moves along
``VALID_TRANSITIONS``, and only the order state machine calls
``transition_to``; everything else treats an order as read-only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from mediastore.domain.exceptions import ValidationError
from mediastore.domain.model.value_objects import Money, Quantity


class OrderStatus(Enum):
    CREATED = "CREATED"
    PENDING_PROCESSING = "PENDING_PROCESSING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    SHIPPING = "SHIPPING"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


VALID_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.CREATED: frozenset({OrderStatus.PENDING_PROCESSING}),
    OrderStatus.PENDING_PROCESSING: frozenset(
        {OrderStatus.APPROVED, OrderStatus.REJECTED, OrderStatus.CANCELLED}
    ),
    OrderStatus.APPROVED: frozenset({OrderStatus.SHIPPING, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPING: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.REJECTED: frozenset(),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATES = frozenset(
    status for status, targets in VALID_TRANSITIONS.items() if not targets
)

MAX_LINE_ITEMS = 50


@dataclass
class OrderLineItem:
    """A product/quantity pair with the unit price captured at checkout."""

    product_id: str
    product_name: str
    quantity: Quantity
    unit_price: Money

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity.value


@dataclass
class Order:
    """Aggregate root for customer orders.

    Use ``Order.create()`` for new orders; ``__init__`` stays simple so
    repositories can rebuild persisted orders without re-validating.
    """

    id: int | None
    customer_id: str
    items: list[OrderLineItem]
    status: OrderStatus = OrderStatus.CREATED
    reservation_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime | None = None

    @staticmethod
    def create(customer_id: str, items: list[OrderLineItem]) -> Order:
        """Create a new order, enforcing all invariants."""
        if not customer_id or not customer_id.strip():
            raise ValidationError("Customer id is required")

        if not items:
            raise ValidationError("Order must contain at least one item")

        if len(items) > MAX_LINE_ITEMS:
            raise ValidationError(f"Maximum {MAX_LINE_ITEMS} items per order")

        seen: set[str] = set()
        for item in items:
            if item.product_id in seen:
                raise ValidationError(
                    f"Product '{item.product_id}' appears more than once in the order"
                )
            seen.add(item.product_id)

        return Order(id=None, customer_id=customer_id.strip(), items=list(items))

    # --- State transitions ----------------------------------------------------

    def can_transition_to(self, target: OrderStatus) -> bool:
        return target in VALID_TRANSITIONS[self.status]

    def transition_to(self, target: OrderStatus, at: datetime) -> None:
        if not self.can_transition_to(target):
            raise ValidationError(
                f"Transition from {self.status.value} to {target.value} is not allowed"
            )
        self.status = target
        self.updated_at = at

    # --- Reservations ---------------------------------------------------------

    def reservation_ids(self) -> list[str]:
        """Per-item reservation ids derived from the order's reservation key."""
        if self.reservation_id is None:
            return []
        return [f"{self.reservation_id}:{item.product_id}" for item in self.items]

    # --- Computed properties --------------------------------------------------

    @property
    def total(self) -> Money:
        result = Money.zero(self.items[0].unit_price.currency) if self.items else Money.zero()
        for item in self.items:
            result = result + item.line_total
        return result

    @property
    def item_count(self) -> int:
        return sum(item.quantity.value for item in self.items)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES


@dataclass(frozen=True)
class StateTransitionRecord:
    """Immutable audit entry for one attempted status change.

    ``from_status`` is None only when the order could not be read, e.g.
    when the per-order lock timed out.
    """

    transition_id: str
    order_id: int
    from_status: OrderStatus | None
    to_status: OrderStatus
    performed_by: str
    timestamp: datetime
    reason: str
    notes: str
    success: bool
