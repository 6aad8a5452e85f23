"""Unit tests for the StockValidationService domain service."""

import pytest

from mediastore.domain.exceptions import EntityNotFoundError, ValidationError
from mediastore.domain.model.cart import Cart, CartItem
from mediastore.domain.model.order import OrderLineItem
from mediastore.domain.model.value_objects import Money, Quantity
from mediastore.domain.service.stock_validation_service import (
    INSUFFICIENT_STOCK,
    PRODUCT_NOT_FOUND,
    STOCK_AVAILABLE,
    StockRequest,
)
from tests.fakes import FakeCore, make_product


def _core() -> FakeCore:
    return FakeCore(
        [
            make_product("cd1", "Kind of Blue", 20, price="200000", value="180000"),
            make_product("dvd1", "Metropolis", 3, price="150000", value="150000"),
            make_product("lp1", "Blue Train", 0),
        ]
    )


class TestValidateProductStock:

    def test_enough_stock(self):
        result = _core().stock_validation.validate_product_stock("cd1", 5)
        assert result.is_valid
        assert result.reason_code == STOCK_AVAILABLE
        assert result.shortfall == 0

    def test_reservations_reduce_available(self):
        core = _core()
        core.ledger.reserve_stock("cd1", 18, "r1")

        result = core.stock_validation.validate_product_stock("cd1", 5)

        assert not result.is_valid
        assert result.reason_code == INSUFFICIENT_STOCK
        assert result.actual_stock == 20
        assert result.reserved_stock == 18
        assert result.available_stock == 2
        assert result.shortfall == 3
        assert "Requested: 5, Available: 2" in result.message

    def test_non_positive_quantity_rejected(self):
        with pytest.raises(ValidationError, match="must be positive"):
            _core().stock_validation.validate_product_stock("cd1", 0)

    def test_unknown_product_raises(self):
        with pytest.raises(EntityNotFoundError):
            _core().stock_validation.validate_product_stock("nope", 1)


class TestValidateBulkStock:

    def test_all_valid(self):
        result = _core().stock_validation.validate_bulk_stock(
            [StockRequest("cd1", 2), StockRequest("dvd1", 3)]
        )
        assert result.all_valid
        assert result.message == "All items passed stock validation"

    def test_reports_every_failure(self):
        result = _core().stock_validation.validate_bulk_stock(
            [StockRequest("cd1", 2), StockRequest("dvd1", 5), StockRequest("ghost", 1)]
        )
        assert not result.all_valid
        assert len(result.results) == 3
        assert [f.product_id for f in result.failures] == ["dvd1", "ghost"]
        assert result.failures[1].reason_code == PRODUCT_NOT_FOUND
        assert result.shortfalls == {"dvd1": 2, "ghost": 1}
        assert result.message == "2 out of 3 items failed stock validation"

    def test_empty_list(self):
        result = _core().stock_validation.validate_bulk_stock([])
        assert result.all_valid
        assert result.message == "No items to validate"

    def test_order_items(self):
        items = [
            OrderLineItem("dvd1", "Metropolis", Quantity(4), Money.of("150000")),
        ]
        result = _core().stock_validation.validate_order_items_stock(items)
        assert not result.all_valid


class TestValidateCartStock:

    def test_valid_cart_totals_current_prices(self):
        cart = Cart("cart-1", [CartItem("cd1", 2), CartItem("dvd1", 1)])

        result = _core().stock_validation.validate_cart_stock(cart)

        assert result.is_valid
        assert result.total_value == Money.of("550000")
        assert result.item_count == 3
        assert "3 items" in result.message

    def test_invalid_cart(self):
        cart = Cart("cart-2", [CartItem("lp1", 1)])
        result = _core().stock_validation.validate_cart_stock(cart)
        assert not result.is_valid
        assert result.message == "Cart validation failed: 1 items have stock issues"


class TestInsufficientStockNotification:

    def test_suggestions_per_product(self):
        core = _core()
        bulk = core.stock_validation.validate_bulk_stock(
            [StockRequest("dvd1", 5), StockRequest("lp1", 1)]
        )

        note = core.stock_validation.generate_insufficient_stock_notification(bulk)

        assert note.title == "Insufficient Stock"
        assert note.suggested_actions == {
            "dvd1": "Reduce quantity to 3 or less",
            "lp1": "Remove from cart - out of stock",
        }
        assert not note.can_proceed_with_available_stock
        assert "Metropolis: Requested 5, but only 3 available (shortfall: 2)" in note.product_messages

    def test_passed_validation(self):
        core = _core()
        bulk = core.stock_validation.validate_bulk_stock([StockRequest("cd1", 1)])
        note = core.stock_validation.generate_insufficient_stock_notification(bulk)
        assert note.title == "Stock Validation Passed"
        assert note.suggested_actions == {}


class TestStockLevels:

    def test_critically_low_uses_available_stock(self):
        core = _core()
        assert not core.stock_validation.is_stock_critically_low("cd1")
        core.ledger.reserve_stock("cd1", 10, "r1")
        assert core.stock_validation.is_stock_critically_low("cd1")

    def test_custom_threshold(self):
        core = _core()
        assert core.stock_validation.is_stock_critically_low("dvd1", threshold=3)
        assert not core.stock_validation.is_stock_critically_low("dvd1", threshold=2)

    def test_stock_info(self):
        core = _core()
        core.ledger.reserve_stock("cd1", 4, "r1")

        info = core.stock_validation.get_stock_info("cd1")

        assert (info.actual_stock, info.reserved_stock, info.available_stock) == (20, 4, 16)
        assert info.in_stock
        assert not info.low_stock

    def test_bulk_stock_info_skips_unknown(self):
        infos = _core().stock_validation.get_bulk_stock_info(["cd1", "ghost", "lp1"])
        assert list(infos) == ["cd1", "lp1"]
        assert not infos["lp1"].in_stock
