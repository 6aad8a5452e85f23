"""Application service: Add Product use case."""

from __future__ import annotations

from mediastore.domain.exceptions import ValidationError
from mediastore.domain.model.operation import OperationType
from mediastore.domain.model.product import Product
from mediastore.domain.model.value_objects import Money
from mediastore.domain.repository.product_repository import ProductRepository
from mediastore.domain.service.locking import KeyedLock
from mediastore.domain.service.operation_quota_service import OperationQuotaService
from mediastore.domain.service.price_constraints import PriceConstraintValidator

PRODUCT_IDS_LOCK = "product-ids"


class AddProductHandler:

    def __init__(
        self,
        product_repo: ProductRepository,
        quotas: OperationQuotaService,
        locks: KeyedLock | None = None,
        validator: PriceConstraintValidator | None = None,
    ) -> None:
        self._product_repo = product_repo
        self._quotas = quotas
        self._locks = locks or KeyedLock()
        self._validator = validator or PriceConstraintValidator()

    def handle(
        self,
        manager_id: str,
        name: str,
        price: str,
        value: str,
        stock: int = 0,
        product_id: str | None = None,
    ) -> Product:
        """Add a new product to the catalog.

        Additions are unlimited but still logged. The opening price obeys
        the same 30%-150% of value rule as later price changes. Id
        assignment and the save happen under one catalog-wide lock, so two
        concurrent additions never get the same id.
        """
        if not name or not name.strip():
            raise ValidationError("Product name is required")
        if stock < 0:
            raise ValidationError("Stock quantity cannot be negative")

        product_value = Money.of(value)
        product_price = Money.of(price, product_value.currency)
        if product_price.amount <= 0:
            raise ValidationError("Product price must be greater than zero")
        if not self._validator.validate_price_range(product_price, product_value):
            valid = self._validator.calculate_valid_price_range(product_value)
            raise ValidationError(
                f"Price {product_price} is outside the valid range {valid}: "
                f"price must be within 30%-150% of value {product_value}"
            )

        with self._locks.hold(PRODUCT_IDS_LOCK):
            if product_id is None:
                # Auto-assign ID based on existing products
                numeric = [int(p.id) for p in self._product_repo.list_all() if p.id.isdigit()]
                product_id = str(max(numeric) + 1) if numeric else "1"
            elif self._product_repo.get_by_id(product_id) is not None:
                raise ValidationError(f"Product '{product_id}' already exists")

            product = Product(
                id=product_id,
                name=name.strip(),
                stock=stock,
                price=product_price,
                value=product_value,
            )
            self._quotas.record_operation(manager_id, OperationType.ADD, [product.id])
            self._product_repo.save(product)
        return product
