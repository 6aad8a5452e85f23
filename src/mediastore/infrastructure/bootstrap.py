"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from mediastore.domain.model.order import Order, OrderStatus
from mediastore.domain.service.clock import Clock, SystemClock
from mediastore.domain.service.locking import KeyedLock
from mediastore.domain.service.notifications import Notifier
from mediastore.domain.service.operation_quota_service import OperationQuotaService
from mediastore.domain.service.order_state_machine import OrderStateMachine
from mediastore.domain.service.price_constraints import (
    PriceConstraintValidator,
    PriceManagementService,
)
from mediastore.domain.service.stock_reservation_ledger import StockReservationLedger
from mediastore.domain.service.stock_validation_service import StockValidationService
from mediastore.infrastructure.config import Settings
from mediastore.infrastructure.persistence.json_operation_log_repository import (
    JsonEditSessionRepository,
    JsonOperationLogRepository,
)
from mediastore.infrastructure.persistence.json_order_repository import (
    JsonOrderRepository,
)
from mediastore.infrastructure.persistence.json_product_repository import (
    JsonProductRepository,
)
from mediastore.infrastructure.persistence.json_reservation_repository import (
    JsonReservationRepository,
)
from mediastore.infrastructure.persistence.json_transition_history_repository import (
    JsonTransitionHistoryRepository,
)
from mediastore.infrastructure.sweeper import ReservationSweeper

logger = structlog.get_logger(__name__)


class LoggingNotifier(Notifier):
    """Stands in for email delivery: every notification becomes a log line."""

    def order_status_changed(
        self, order: Order, from_status: OrderStatus, to_status: OrderStatus, note: str
    ) -> None:
        logger.info(
            "notify.order_status_changed",
            order_id=order.id,
            customer_id=order.customer_id,
            from_status=from_status.value,
            to_status=to_status.value,
            note=note,
        )

    def operation_rejected(self, manager_id: str, operation: str, message: str) -> None:
        logger.info(
            "notify.operation_rejected",
            manager_id=manager_id,
            operation=operation,
            message=message,
        )


@dataclass
class Container:
    settings: Settings
    clock: Clock
    locks: KeyedLock
    notifier: Notifier
    product_repo: JsonProductRepository
    order_repo: JsonOrderRepository
    reservation_repo: JsonReservationRepository
    history_repo: JsonTransitionHistoryRepository
    operation_log: JsonOperationLogRepository
    edit_sessions: JsonEditSessionRepository
    ledger: StockReservationLedger
    stock_validation: StockValidationService
    quotas: OperationQuotaService
    price_service: PriceManagementService
    state_machine: OrderStateMachine
    sweeper: ReservationSweeper


def build_container(
    settings: Settings,
    clock: Clock | None = None,
    notifier: Notifier | None = None,
) -> Container:
    clock = clock or SystemClock()
    notifier = notifier or LoggingNotifier()
    data_dir = settings.data_dir
    locks = KeyedLock(settings.lock_timeout_seconds)

    product_repo = JsonProductRepository(data_dir / "products.json")
    order_repo = JsonOrderRepository(data_dir / "orders.json")
    reservation_repo = JsonReservationRepository(data_dir / "reservations.json")
    history_repo = JsonTransitionHistoryRepository(data_dir / "transitions.json")
    operation_log = JsonOperationLogRepository(data_dir / "operations.json")
    edit_sessions = JsonEditSessionRepository(data_dir / "edit_sessions.json")

    ledger = StockReservationLedger(
        product_repo,
        reservation_repo,
        clock,
        locks=locks,
        default_ttl_minutes=settings.reservation_ttl_minutes,
    )
    stock_validation = StockValidationService(
        product_repo, ledger, low_stock_threshold=settings.low_stock_threshold
    )
    quotas = OperationQuotaService(
        operation_log,
        edit_sessions,
        clock,
        locks=locks,
        edit_session_timeout_minutes=settings.edit_session_timeout_minutes,
    )
    price_service = PriceManagementService(quotas, PriceConstraintValidator())
    state_machine = OrderStateMachine(
        order_repo,
        history_repo,
        stock_validation,
        ledger,
        clock,
        notifier=notifier,
        locks=locks,
        approval_ttl_minutes=settings.approval_reservation_ttl_minutes,
    )

    logger.debug("container.built", data_dir=str(data_dir))
    return Container(
        settings=settings,
        clock=clock,
        locks=locks,
        notifier=notifier,
        product_repo=product_repo,
        order_repo=order_repo,
        reservation_repo=reservation_repo,
        history_repo=history_repo,
        operation_log=operation_log,
        edit_sessions=edit_sessions,
        ledger=ledger,
        stock_validation=stock_validation,
        quotas=quotas,
        price_service=price_service,
        state_machine=state_machine,
        sweeper=ReservationSweeper(ledger, settings.sweep_interval_seconds),
    )
