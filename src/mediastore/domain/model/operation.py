"""Product-manager operation log and edit sessions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class OperationType(Enum):
    ADD = "ADD"
    EDIT = "EDIT"
    DELETE = "DELETE"
    PRICE_UPDATE = "PRICE_UPDATE"
    BULK_DELETE = "BULK_DELETE"


# Operation types that draw from the daily edit/delete allowance.
QUOTA_COUNTED_TYPES = frozenset(
    {OperationType.EDIT, OperationType.DELETE, OperationType.BULK_DELETE}
)


@dataclass(frozen=True)
class OperationRecord:
    """One manager action on one product. Append-only."""

    manager_id: str
    operation_type: OperationType
    product_id: str
    occurred_at: datetime
    day: date


@dataclass(frozen=True)
class EditSession:

    manager_id: str
    product_id: str
    started_at: datetime
    expires_at: datetime

    def is_open(self, now: datetime) -> bool:
        return now < self.expires_at
