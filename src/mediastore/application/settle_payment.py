"""Application service: Settle Payment use case.

The payment gateway reports back once per approved order. Success commits
the order's held stock; failure or timeout gives the stock back and
cancels the order on the system's behalf.
"""

from __future__ import annotations

import structlog

from mediastore.application.dto import OrderDTO, order_to_dto
from mediastore.domain.exceptions import EntityNotFoundError, ValidationError
from mediastore.domain.model.actor import Actor
from mediastore.domain.model.order import OrderStatus
from mediastore.domain.model.reservation import ReservationState
from mediastore.domain.repository.order_repository import OrderRepository
from mediastore.domain.service.order_state_machine import OrderStateMachine
from mediastore.domain.service.stock_reservation_ledger import StockReservationLedger

logger = structlog.get_logger(__name__)

PAYMENT_FAILED = "PAYMENT_FAILED"


class SettlePaymentHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        ledger: StockReservationLedger,
        state_machine: OrderStateMachine,
    ) -> None:
        self._order_repo = order_repo
        self._ledger = ledger
        self._state_machine = state_machine

    def handle(self, order_id: int, succeeded: bool, reference: str = "") -> OrderDTO:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundError(f"Order #{order_id} not found")
        if order.status is not OrderStatus.APPROVED:
            raise ValidationError(
                f"Payment can only be settled for APPROVED orders; "
                f"order #{order_id} is {order.status.value}"
            )

        log = logger.bind(order_id=order_id, reference=reference)

        if succeeded:
            for rid in order.reservation_ids():
                reservation = self._ledger.get_reservation(rid)
                if reservation is not None and reservation.state is ReservationState.CONFIRMED:
                    continue
                self._ledger.confirm_reservation(rid)
            log.info("payment.settled")
        else:
            note = f"Payment {reference} failed" if reference else "Payment failed"
            self._state_machine.transition_order_state(
                order_id, OrderStatus.CANCELLED, Actor.system("payment-gateway"),
                PAYMENT_FAILED, note,
            )
            log.warning("payment.failed")

        settled = self._order_repo.get_by_id(order_id)
        return order_to_dto(settled or order)
