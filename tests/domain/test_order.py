"""Unit tests for the Order aggregate and its business rules."""

from datetime import datetime, timezone

import pytest

from mediastore.domain.exceptions import ValidationError
from mediastore.domain.model.order import (
    TERMINAL_STATES,
    Order,
    OrderLineItem,
    OrderStatus,
)
from mediastore.domain.model.value_objects import Money, Quantity

NOW = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


def _make_item(product_id: str = "1", qty: int = 1, price: str = "15000") -> OrderLineItem:
    """Helper to build a valid line item."""
    return OrderLineItem(
        product_id=product_id,
        product_name=f"Product {product_id}",
        quantity=Quantity(qty),
        unit_price=Money.of(price),
    )


class TestOrderCreation:

    def test_happy_path(self):
        order = Order.create(customer_id="c-1", items=[_make_item(qty=2, price="10000")])
        assert order.customer_id == "c-1"
        assert order.status == OrderStatus.CREATED
        assert order.reservation_id is None
        assert order.total == Money.of("20000")

    def test_id_is_none_for_new_orders(self):
        order = Order.create("c-1", [_make_item()])
        assert order.id is None  # assigned by repository

    def test_total_and_item_count(self):
        order = Order.create(
            "c-2", [_make_item("1", qty=3, price="15000"), _make_item("2", qty=5, price="25000")]
        )
        assert order.total == Money.of("170000")
        assert order.item_count == 8

    def test_blank_customer_rejected(self):
        with pytest.raises(ValidationError, match="Customer id is required"):
            Order.create("  ", [_make_item()])

    def test_empty_order_rejected(self):
        with pytest.raises(ValidationError, match="at least one item"):
            Order.create("c-1", [])

    def test_duplicate_product_rejected(self):
        with pytest.raises(ValidationError, match="more than once"):
            Order.create("c-1", [_make_item("1"), _make_item("1")])


class TestOrderMaxItems:

    def test_51_items_rejected(self):
        items = [_make_item(str(i)) for i in range(51)]
        with pytest.raises(ValidationError, match="Maximum 50 items"):
            Order.create("c-1", items)

    def test_50_items_accepted(self):
        items = [_make_item(str(i)) for i in range(50)]
        order = Order.create("c-1", items)
        assert len(order.items) == 50


class TestOrderTransitions:

    def test_follows_happy_path(self):
        order = Order.create("c-1", [_make_item()])
        for status in (
            OrderStatus.PENDING_PROCESSING,
            OrderStatus.APPROVED,
            OrderStatus.SHIPPING,
            OrderStatus.DELIVERED,
        ):
            order.transition_to(status, NOW)
        assert order.status == OrderStatus.DELIVERED
        assert order.updated_at == NOW
        assert order.is_terminal

    def test_skipping_approval_rejected(self):
        order = Order.create("c-1", [_make_item()])
        order.transition_to(OrderStatus.PENDING_PROCESSING, NOW)
        with pytest.raises(ValidationError, match="PENDING_PROCESSING to SHIPPING"):
            order.transition_to(OrderStatus.SHIPPING, NOW)

    def test_cannot_cancel_while_shipping(self):
        order = Order(id=1, customer_id="c-1", items=[_make_item()], status=OrderStatus.SHIPPING)
        assert not order.can_transition_to(OrderStatus.CANCELLED)

    @pytest.mark.parametrize("status", sorted(TERMINAL_STATES, key=lambda s: s.value))
    def test_terminal_states_have_no_exit(self, status):
        order = Order(id=1, customer_id="c-1", items=[_make_item()], status=status)
        assert not any(order.can_transition_to(target) for target in OrderStatus)

    def test_terminal_states(self):
        assert TERMINAL_STATES == {
            OrderStatus.REJECTED,
            OrderStatus.DELIVERED,
            OrderStatus.CANCELLED,
        }


class TestReservationIds:

    def test_none_without_reservation(self):
        order = Order.create("c-1", [_make_item("1")])
        assert order.reservation_ids() == []

    def test_one_per_item(self):
        order = Order.create("c-1", [_make_item("1"), _make_item("2")])
        order.reservation_id = "order-1-abc"
        assert order.reservation_ids() == ["order-1-abc:1", "order-1-abc:2"]
