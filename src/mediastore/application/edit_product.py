"""Application service: Edit Product use case.

An edit runs inside the manager's single edit session and counts toward
the daily edit/delete allowance. The session is always closed afterwards,
whether the edit went through or not. The new values are checked before
the operation is recorded, so a refused edit neither uses the allowance nor
leaves a half-applied change.
"""

from __future__ import annotations

from mediastore.application.rejections import report_rejection
from mediastore.domain.exceptions import EntityNotFoundError, InventoryError, ValidationError
from mediastore.domain.model.operation import OperationType
from mediastore.domain.model.product import Product
from mediastore.domain.repository.product_repository import ProductRepository
from mediastore.domain.service.notifications import Notifier
from mediastore.domain.service.operation_quota_service import OperationQuotaService
from mediastore.domain.service.stock_reservation_ledger import StockReservationLedger


class EditProductHandler:

    def __init__(
        self,
        product_repo: ProductRepository,
        ledger: StockReservationLedger,
        quotas: OperationQuotaService,
        notifier: Notifier | None = None,
    ) -> None:
        self._product_repo = product_repo
        self._ledger = ledger
        self._quotas = quotas
        self._notifier = notifier

    def handle(
        self,
        manager_id: str,
        product_id: str,
        name: str | None = None,
        stock: int | None = None,
    ) -> Product:
        if name is None and stock is None:
            raise ValidationError("Nothing to edit: give a new name and/or stock level")
        if self._product_repo.get_by_id(product_id) is None:
            raise EntityNotFoundError(f"Product with ID '{product_id}' not found")

        try:
            self._quotas.start_edit_session(manager_id, product_id)
        except ValidationError as exc:
            report_rejection(self._notifier, manager_id, OperationType.EDIT.value, str(exc))
            raise

        try:
            self._check_edit(product_id, name, stock)
            try:
                self._quotas.record_operation(manager_id, OperationType.EDIT, [product_id])
            except ValidationError as exc:
                report_rejection(self._notifier, manager_id, OperationType.EDIT.value, str(exc))
                raise

            if stock is not None:
                product = self._ledger.set_actual_stock(product_id, stock)
            if name is not None:
                product = self._ledger.update_product(product_id, lambda p: p.rename(name))
        finally:
            self._quotas.end_edit_session(manager_id, product_id)

        return product

    def _check_edit(self, product_id: str, name: str | None, stock: int | None) -> None:
        if name is not None and not name.strip():
            raise ValidationError("Product name is required")
        if stock is None:
            return
        if stock < 0:
            raise ValidationError("Stock quantity cannot be negative")
        reserved = self._ledger.get_reserved_stock(product_id)
        if stock < reserved:
            product = self._product_repo.get_by_id(product_id)
            raise InventoryError(
                f"Cannot set stock of {product.name} to {stock}: "
                f"{reserved} units are held by active reservations"
            )
