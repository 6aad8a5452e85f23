"""Price rules for manager-initiated price changes.

A product's selling price must stay within 30%-150% of its base value,
boundaries included. A price change also consumes one of the manager's
two daily updates for that product, so validation composes both checks
and says which one failed.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from mediastore.domain.model.product import Product
from mediastore.domain.model.value_objects import Money
from mediastore.domain.service.operation_quota_service import (
    MAX_PRICE_UPDATES_PER_PRODUCT_PER_DAY,
    OperationQuotaService,
)

MIN_PRICE_RATIO = Decimal("0.30")
MAX_PRICE_RATIO = Decimal("1.50")
BOUNDARY_TOLERANCE = Decimal("0.01")

PRICE_OK = "OK"
PRICE_OUT_OF_RANGE = "PRICE_OUT_OF_RANGE"
PRICE_UPDATE_LIMIT_REACHED = "PRICE_UPDATE_LIMIT_REACHED"


@dataclass(frozen=True)
class PriceRange:
    minimum: Money
    maximum: Money

    def __contains__(self, price: Money) -> bool:
        return self.minimum <= price <= self.maximum

    def __str__(self) -> str:
        return f"{self.minimum} - {self.maximum}"


@dataclass(frozen=True)
class PriceValidationResult:
    is_valid: bool
    reason_code: str
    message: str
    valid_range: PriceRange


class PriceConstraintValidator:
    """Pure range arithmetic; no state."""

    @staticmethod
    def calculate_valid_price_range(product_value: Money) -> PriceRange:
        if product_value.amount <= 0:
            zero = Money.zero(product_value.currency)
            return PriceRange(zero, zero)
        return PriceRange(
            product_value.percent_of(MIN_PRICE_RATIO),
            product_value.percent_of(MAX_PRICE_RATIO),
        )

    def validate_price_range(self, new_price: Money, product_value: Money) -> bool:
        if product_value.amount <= 0:
            return False
        return new_price in self.calculate_valid_price_range(product_value)

    def is_price_at_boundary(self, price: Money, product_value: Money) -> bool:
        if product_value.amount <= 0:
            return False
        valid = self.calculate_valid_price_range(product_value)
        return (
            abs(price.amount - valid.minimum.amount) < BOUNDARY_TOLERANCE
            or abs(price.amount - valid.maximum.amount) < BOUNDARY_TOLERANCE
        )


class PriceManagementService:

    def __init__(
        self,
        quotas: OperationQuotaService,
        validator: PriceConstraintValidator | None = None,
    ) -> None:
        self._quotas = quotas
        self._validator = validator or PriceConstraintValidator()

    def validate_price_update(
        self, manager_id: str, product: Product, new_price: Money
    ) -> PriceValidationResult:
        """Range check first, then the per-product daily allowance."""
        valid_range = self._validator.calculate_valid_price_range(product.value)

        if not self._validator.validate_price_range(new_price, product.value):
            return PriceValidationResult(
                is_valid=False,
                reason_code=PRICE_OUT_OF_RANGE,
                message=(
                    f"Price {new_price} is outside the valid range {valid_range}: "
                    f"price must be within 30%-150% of value {product.value}"
                ),
                valid_range=valid_range,
            )

        if not self._quotas.can_update_price(manager_id, product.id):
            return PriceValidationResult(
                is_valid=False,
                reason_code=PRICE_UPDATE_LIMIT_REACHED,
                message=(
                    f"Daily price update limit reached for product {product.id}: "
                    f"maximum {MAX_PRICE_UPDATES_PER_PRODUCT_PER_DAY} updates per "
                    f"product per day"
                ),
                valid_range=valid_range,
            )

        return PriceValidationResult(
            is_valid=True,
            reason_code=PRICE_OK,
            message="Price update is valid",
            valid_range=valid_range,
        )
