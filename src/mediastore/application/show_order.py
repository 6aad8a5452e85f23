"""Application service: Show Order use case (query)."""

from __future__ import annotations

from mediastore.application.dto import (
    OrderDTO,
    TransitionDTO,
    order_to_dto,
    transition_to_dto,
)
from mediastore.domain.exceptions import EntityNotFoundError
from mediastore.domain.repository.order_repository import OrderRepository
from mediastore.domain.service.order_state_machine import OrderStateMachine


class ShowOrderHandler:

    def __init__(self, order_repo: OrderRepository, state_machine: OrderStateMachine) -> None:
        self._order_repo = order_repo
        self._state_machine = state_machine

    def handle(self, order_id: int) -> OrderDTO:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundError(f"Order #{order_id} not found")
        return order_to_dto(order)

    def history(self, order_id: int) -> list[TransitionDTO]:
        return [
            transition_to_dto(record)
            for record in self._state_machine.get_order_state_history(order_id)
        ]

    def pending(self) -> list[OrderDTO]:
        return [order_to_dto(o) for o in self._state_machine.get_pending_approval_orders()]
