"""Application service: Update Product Price use case."""

from __future__ import annotations

from mediastore.application.rejections import report_rejection
from mediastore.domain.exceptions import EntityNotFoundError, ValidationError
from mediastore.domain.model.operation import OperationType
from mediastore.domain.model.product import Product
from mediastore.domain.model.value_objects import Money
from mediastore.domain.repository.product_repository import ProductRepository
from mediastore.domain.service.notifications import Notifier
from mediastore.domain.service.operation_quota_service import OperationQuotaService
from mediastore.domain.service.price_constraints import PriceManagementService
from mediastore.domain.service.stock_reservation_ledger import StockReservationLedger


class UpdateProductPriceHandler:

    def __init__(
        self,
        product_repo: ProductRepository,
        ledger: StockReservationLedger,
        quotas: OperationQuotaService,
        price_service: PriceManagementService,
        notifier: Notifier | None = None,
    ) -> None:
        self._product_repo = product_repo
        self._ledger = ledger
        self._quotas = quotas
        self._price_service = price_service
        self._notifier = notifier

    def handle(self, manager_id: str, product_id: str, new_price: str) -> Product:
        """Change a product's selling price.

        The new price must sit within 30%-150% of the product's value, and
        each manager may reprice a given product at most twice a day.
        Existing orders are unaffected; they captured a price snapshot.
        """
        product = self._product_repo.get_by_id(product_id)
        if product is None:
            raise EntityNotFoundError(f"Product with ID '{product_id}' not found")

        price = Money.of(new_price, product.value.currency)
        result = self._price_service.validate_price_update(manager_id, product, price)
        if not result.is_valid:
            report_rejection(self._notifier, manager_id, OperationType.PRICE_UPDATE.value,
                             result.message)
            raise ValidationError(result.message)

        try:
            self._quotas.record_operation(manager_id, OperationType.PRICE_UPDATE, [product_id])
        except ValidationError as exc:
            report_rejection(self._notifier, manager_id, OperationType.PRICE_UPDATE.value,
                             str(exc))
            raise

        return self._ledger.update_product(product_id, lambda p: p.update_price(price))
