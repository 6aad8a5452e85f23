"""Domain service: Stock Validation.

Answers "can this cart / order be fulfilled right now" on top of the
reservation ledger. Read-only: nothing here mutates stock or holds locks,
so a validation run never blocks writers.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from mediastore.domain.exceptions import EntityNotFoundError, ValidationError
from mediastore.domain.model.cart import Cart
from mediastore.domain.model.order import OrderLineItem
from mediastore.domain.model.value_objects import Money
from mediastore.domain.repository.product_repository import ProductRepository
from mediastore.domain.service.stock_reservation_ledger import StockReservationLedger

logger = structlog.get_logger(__name__)

DEFAULT_LOW_STOCK_THRESHOLD = 10

STOCK_AVAILABLE = "STOCK_AVAILABLE"
INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"


@dataclass(frozen=True)
class StockRequest:
    """One product/quantity pair to check."""

    product_id: str
    quantity: int


@dataclass(frozen=True)
class StockValidationResult:
    is_valid: bool
    product_id: str
    product_name: str
    requested_quantity: int
    actual_stock: int
    reserved_stock: int
    available_stock: int
    message: str
    reason_code: str

    @property
    def shortfall(self) -> int:
        return max(0, self.requested_quantity - self.available_stock)


@dataclass(frozen=True)
class BulkStockValidationResult:
    results: list[StockValidationResult]
    failures: list[StockValidationResult]
    message: str

    @property
    def all_valid(self) -> bool:
        return not self.failures

    @property
    def shortfalls(self) -> dict[str, int]:
        return {f.product_id: f.shortfall for f in self.failures}


@dataclass(frozen=True)
class CartStockValidationResult:
    cart_id: str
    bulk: BulkStockValidationResult
    total_value: Money
    item_count: int
    message: str

    @property
    def is_valid(self) -> bool:
        return self.bulk.all_valid


@dataclass(frozen=True)
class InsufficientStockNotification:
    title: str
    message: str
    product_messages: list[str] = field(default_factory=list)
    suggested_actions: dict[str, str] = field(default_factory=dict)
    can_proceed_with_available_stock: bool = True


@dataclass(frozen=True)
class StockInfo:
    product_id: str
    product_name: str
    actual_stock: int
    reserved_stock: int
    available_stock: int
    low_stock_threshold: int

    @property
    def in_stock(self) -> bool:
        return self.available_stock > 0

    @property
    def low_stock(self) -> bool:
        return self.available_stock <= self.low_stock_threshold


class StockValidationService:

    def __init__(
        self,
        product_repo: ProductRepository,
        ledger: StockReservationLedger,
        low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    ) -> None:
        self._product_repo = product_repo
        self._ledger = ledger
        self._low_stock_threshold = low_stock_threshold

    # --- Single product -------------------------------------------------------

    def validate_product_stock(
        self, product_id: str, requested_quantity: int
    ) -> StockValidationResult:
        """Compare a request against available stock for one product.

        Raises ValidationError for a non-positive quantity and
        EntityNotFoundError for an unknown product.
        """
        if not product_id or not product_id.strip():
            raise ValidationError("Product ID cannot be empty")
        if requested_quantity <= 0:
            raise ValidationError("Requested quantity must be positive")

        info = self.get_stock_info(product_id)
        is_valid = info.available_stock >= requested_quantity

        if is_valid:
            message = f"Stock validation passed for {info.product_name}"
            reason = STOCK_AVAILABLE
        else:
            message = (
                f"Insufficient stock for {info.product_name}. "
                f"Requested: {requested_quantity}, Available: {info.available_stock}"
            )
            reason = INSUFFICIENT_STOCK
            logger.warning(
                "stock.validation_failed",
                product_id=product_id,
                requested=requested_quantity,
                available=info.available_stock,
            )

        return StockValidationResult(
            is_valid=is_valid,
            product_id=product_id,
            product_name=info.product_name,
            requested_quantity=requested_quantity,
            actual_stock=info.actual_stock,
            reserved_stock=info.reserved_stock,
            available_stock=info.available_stock,
            message=message,
            reason_code=reason,
        )

    # --- Many products --------------------------------------------------------

    def validate_bulk_stock(self, items: Iterable[StockRequest]) -> BulkStockValidationResult:
        """Run the single-product check for every item.

        Unknown products are reported as failed items rather than raised,
        so the caller always gets the full picture in one pass.
        """
        items = list(items)
        if not items:
            return BulkStockValidationResult([], [], "No items to validate")

        results: list[StockValidationResult] = []
        for item in items:
            try:
                result = self.validate_product_stock(item.product_id, item.quantity)
            except EntityNotFoundError as exc:
                result = StockValidationResult(
                    is_valid=False,
                    product_id=item.product_id,
                    product_name="Unknown product",
                    requested_quantity=item.quantity,
                    actual_stock=0,
                    reserved_stock=0,
                    available_stock=0,
                    message=str(exc),
                    reason_code=PRODUCT_NOT_FOUND,
                )
            results.append(result)

        failures = [r for r in results if not r.is_valid]
        if failures:
            message = f"{len(failures)} out of {len(results)} items failed stock validation"
        else:
            message = "All items passed stock validation"

        logger.info(
            "stock.bulk_validated", checked=len(results), failed=len(failures)
        )
        return BulkStockValidationResult(results, failures, message)

    def validate_order_items_stock(
        self, items: Iterable[OrderLineItem]
    ) -> BulkStockValidationResult:
        return self.validate_bulk_stock(
            StockRequest(item.product_id, item.quantity.value) for item in items
        )

    def validate_cart_stock(self, cart: Cart) -> CartStockValidationResult:
        """Bulk validation plus the totals the checkout screen shows."""
        bulk = self.validate_bulk_stock(
            StockRequest(item.product_id, item.quantity) for item in cart.items
        )

        total = Money.zero()
        for item in cart.items:
            product = self._product_repo.get_by_id(item.product_id)
            if product is not None and item.quantity > 0:
                total = total + product.price * item.quantity

        if bulk.all_valid:
            message = (
                f"Cart validation passed: {cart.item_count} items, total value: {total}"
            )
        else:
            message = f"Cart validation failed: {len(bulk.failures)} items have stock issues"

        return CartStockValidationResult(
            cart_id=cart.cart_id,
            bulk=bulk,
            total_value=total,
            item_count=cart.item_count,
            message=message,
        )

    # --- Presentation helpers -------------------------------------------------

    @staticmethod
    def generate_insufficient_stock_notification(
        result: BulkStockValidationResult,
    ) -> InsufficientStockNotification:
        """Turn shortfalls into a message set and per-product suggestions."""
        if result.all_valid:
            return InsufficientStockNotification(
                title="Stock Validation Passed",
                message="All items are available in sufficient quantities.",
            )

        product_messages: list[str] = []
        actions: dict[str, str] = {}
        can_proceed = True

        for failure in result.failures:
            product_messages.append(
                f"{failure.product_name}: Requested {failure.requested_quantity}, "
                f"but only {failure.available_stock} available "
                f"(shortfall: {failure.shortfall})"
            )
            if failure.available_stock == 0:
                can_proceed = False
                actions[failure.product_id] = "Remove from cart - out of stock"
            else:
                actions[failure.product_id] = (
                    f"Reduce quantity to {failure.available_stock} or less"
                )

        return InsufficientStockNotification(
            title="Insufficient Stock",
            message=(
                f"{len(result.failures)} product(s) in your cart have insufficient "
                f"stock. Please review and adjust quantities."
            ),
            product_messages=product_messages,
            suggested_actions=actions,
            can_proceed_with_available_stock=can_proceed,
        )

    # --- Stock levels ---------------------------------------------------------

    def is_stock_critically_low(self, product_id: str, threshold: int | None = None) -> bool:
        """Restocking alert: available stock at or under *threshold*."""
        if threshold is None or threshold < 0:
            threshold = self._low_stock_threshold
        available = self._ledger.get_available_stock(product_id)
        if available <= threshold:
            logger.warning(
                "stock.critically_low",
                product_id=product_id,
                available=available,
                threshold=threshold,
            )
            return True
        return False

    def get_stock_info(self, product_id: str) -> StockInfo:
        product = self._product_repo.get_by_id(product_id)
        if product is None:
            raise EntityNotFoundError(f"Product with ID '{product_id}' not found")
        available = self._ledger.get_available_stock(product_id)
        return StockInfo(
            product_id=product.id,
            product_name=product.name,
            actual_stock=product.stock,
            reserved_stock=product.stock - available,
            available_stock=available,
            low_stock_threshold=self._low_stock_threshold,
        )

    def get_bulk_stock_info(self, product_ids: Iterable[str]) -> dict[str, StockInfo]:
        """Stock info per id; unknown ids are skipped with a warning."""
        infos: dict[str, StockInfo] = {}
        for product_id in product_ids:
            try:
                infos[product_id] = self.get_stock_info(product_id)
            except EntityNotFoundError:
                logger.warning("stock.info_missing_product", product_id=product_id)
        return infos
