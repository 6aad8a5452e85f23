"""Tests for the read-side handlers: inventory and order views."""

import pytest

from mediastore.application.dto import CheckoutItemSpec
from mediastore.application.place_order import PlaceOrderHandler
from mediastore.application.show_inventory import ShowInventoryHandler
from mediastore.application.show_order import ShowOrderHandler
from mediastore.domain.exceptions import EntityNotFoundError
from mediastore.domain.model.actor import Actor
from tests.fakes import FakeCore, make_product


class TestShowInventory:

    def test_lines_sorted_with_reserved_and_available(self):
        core = FakeCore(
            [make_product("b", "Metropolis", 30), make_product("a", "Kind of Blue", 12)]
        )
        core.ledger.reserve_stock("a", 5, "r1")

        lines = ShowInventoryHandler(core.product_repo, core.stock_validation).handle()

        assert [line.product_id for line in lines] == ["a", "b"]
        assert (lines[0].actual, lines[0].reserved, lines[0].available) == (12, 5, 7)
        assert lines[0].low_stock
        assert not lines[1].low_stock


class TestShowOrder:

    def _placed(self):
        core = FakeCore([make_product("cd1", "Kind of Blue", 10)])
        placed = PlaceOrderHandler(
            core.order_repo, core.product_repo, core.stock_validation, core.state_machine
        ).handle("cust-1", [CheckoutItemSpec("cd1", 2)])
        return core, ShowOrderHandler(core.order_repo, core.state_machine), placed.order.id

    def test_show_and_history(self):
        core, handler, order_id = self._placed()
        core.state_machine.approve_order(order_id, Actor.manager("pm1"))

        dto = handler.handle(order_id)
        history = handler.history(order_id)

        assert dto.status == "APPROVED"
        assert dto.reservation_id is not None
        assert [h.to_status for h in history] == ["PENDING_PROCESSING", "APPROVED"]
        assert all(h.success for h in history)

    def test_pending_lists_waiting_orders(self):
        _, handler, order_id = self._placed()
        assert [o.id for o in handler.pending()] == [order_id]

    def test_unknown_order(self):
        _, handler, _ = self._placed()
        with pytest.raises(EntityNotFoundError):
            handler.handle(42)
