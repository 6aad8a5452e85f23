"""Outbound notification port.

Delivery (email, push) lives outside the core. Callers treat every call as
fire-and-forget: a failing notifier must never undo a committed change.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from mediastore.domain.model.order import Order, OrderStatus


class Notifier(ABC):

    @abstractmethod
    def order_status_changed(
        self,
        order: Order,
        from_status: OrderStatus,
        to_status: OrderStatus,
        note: str,
    ) -> None:
        """An order moved between two statuses."""

    @abstractmethod
    def operation_rejected(self, manager_id: str, operation: str, message: str) -> None:
        """A manager action was refused by a quota or price rule."""
