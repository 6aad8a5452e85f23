"""Abstract append-only store for order state transition records."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from mediastore.domain.model.order import StateTransitionRecord


class TransitionHistoryRepository(ABC):

    @abstractmethod
    def append(self, record: StateTransitionRecord) -> None:
        """Append one record. Records are never updated or removed."""

    @abstractmethod
    def list_for_order(self, order_id: int) -> list[StateTransitionRecord]:
        """Return an order's records in insertion order."""

    @abstractmethod
    def list_between(self, start: datetime, end: datetime) -> list[StateTransitionRecord]:
        """Return records with ``start <= timestamp < end``."""
