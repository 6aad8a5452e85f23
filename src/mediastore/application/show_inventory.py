"""Application service: Show Inventory use case (query)."""

from __future__ import annotations

from mediastore.application.dto import InventoryLineDTO
from mediastore.domain.repository.product_repository import ProductRepository
from mediastore.domain.service.stock_validation_service import StockValidationService


class ShowInventoryHandler:

    def __init__(
        self, product_repo: ProductRepository, stock_validation: StockValidationService
    ) -> None:
        self._product_repo = product_repo
        self._stock = stock_validation

    def handle(self) -> list[InventoryLineDTO]:
        ids = sorted(p.id for p in self._product_repo.list_all())
        infos = self._stock.get_bulk_stock_info(ids)
        return [
            InventoryLineDTO(
                product_id=info.product_id,
                product_name=info.product_name,
                actual=info.actual_stock,
                reserved=info.reserved_stock,
                available=info.available_stock,
                low_stock=info.low_stock,
            )
            for info in infos.values()
        ]
