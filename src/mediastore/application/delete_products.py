"""Application service: Delete Products use case (single or bulk)."""

from __future__ import annotations

from mediastore.application.rejections import report_rejection
from mediastore.domain.exceptions import EntityNotFoundError, InventoryError, ValidationError
from mediastore.domain.model.operation import OperationType
from mediastore.domain.repository.product_repository import ProductRepository
from mediastore.domain.service.notifications import Notifier
from mediastore.domain.service.operation_quota_service import OperationQuotaService
from mediastore.domain.service.stock_reservation_ledger import StockReservationLedger


class DeleteProductsHandler:

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

    def handle(self, manager_id: str, product_ids: list[str]) -> int:
        """Delete products, charging one operation per id against the daily cap.

        More than one id is a BULK_DELETE, limited to 10 products. The whole
        batch is checked for active reservations before the quota is
        recorded, so a refused delete costs nothing.
        """
        ids = list(dict.fromkeys(pid.strip() for pid in product_ids if pid.strip()))
        if not ids:
            raise ValidationError("Product IDs list cannot be empty")

        missing = [pid for pid in ids if self._product_repo.get_by_id(pid) is None]
        if missing:
            raise EntityNotFoundError(f"Products not found: {', '.join(missing)}")

        held = [pid for pid in ids if self._ledger.get_reserved_stock(pid)]
        if held:
            raise InventoryError(
                f"Cannot delete products held by active reservations: {', '.join(held)}"
            )

        operation = OperationType.BULK_DELETE if len(ids) > 1 else OperationType.DELETE
        try:
            self._quotas.record_operation(manager_id, operation, ids)
        except ValidationError as exc:
            report_rejection(self._notifier, manager_id, operation.value, str(exc))
            raise

        return self._ledger.remove_products(ids)
