"""Domain service: Operation Quotas for product managers.

Daily rules, per manager and calendar day:

- additions are unlimited;
- edits and deletions (single or bulk) share a cap of 30;
- at most 2 price updates per product;
- at most 10 products per bulk deletion;
- at most one open edit session per manager.

``can_*`` and ``validate_*`` are side-effect free. ``record_operation`` is
the only writer of the counters: it re-validates under the manager's daily
lock so concurrent recorders cannot overrun a cap.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta

import structlog

from mediastore.domain.exceptions import ValidationError
from mediastore.domain.model.operation import (
    QUOTA_COUNTED_TYPES,
    EditSession,
    OperationRecord,
    OperationType,
)
from mediastore.domain.repository.operation_log_repository import (
    EditSessionRepository,
    OperationLogRepository,
)
from mediastore.domain.service.clock import Clock
from mediastore.domain.service.locking import KeyedLock

logger = structlog.get_logger(__name__)

DAILY_OPERATIONS_LIMIT = 30
MAX_BULK_DELETE_SIZE = 10
MAX_PRICE_UPDATES_PER_PRODUCT_PER_DAY = 2
DEFAULT_EDIT_SESSION_TIMEOUT_MINUTES = 30


@dataclass(frozen=True)
class QuotaStatus:
    """Snapshot of one manager's usage for one day."""

    manager_id: str
    day: date
    operations_used: int
    additions: int
    edits: int
    deletions: int
    price_updates: int
    price_updates_by_product: dict[str, int] = field(default_factory=dict)
    has_active_edit_session: bool = False
    active_edit_product_id: str | None = None
    daily_limit: int = DAILY_OPERATIONS_LIMIT

    @property
    def operations_remaining(self) -> int:
        return max(0, self.daily_limit - self.operations_used)

    def price_updates_remaining(self, product_id: str) -> int:
        used = self.price_updates_by_product.get(product_id, 0)
        return max(0, MAX_PRICE_UPDATES_PER_PRODUCT_PER_DAY - used)


class OperationQuotaService:

    def __init__(
        self,
        operation_log: OperationLogRepository,
        edit_sessions: EditSessionRepository,
        clock: Clock,
        locks: KeyedLock | None = None,
        edit_session_timeout_minutes: int = DEFAULT_EDIT_SESSION_TIMEOUT_MINUTES,
    ) -> None:
        self._log = operation_log
        self._sessions = edit_sessions
        self._clock = clock
        self._locks = locks or KeyedLock()
        self._session_timeout = timedelta(minutes=edit_session_timeout_minutes)

    # --- Pre-flight checks ----------------------------------------------------

    def can_add_product(self, manager_id: str) -> bool:
        return True

    def can_edit_product(self, manager_id: str, product_id: str) -> bool:
        status = self.get_quota_status(manager_id)
        return not status.has_active_edit_session and status.operations_remaining >= 1

    def can_delete_products(self, manager_id: str, product_ids: Sequence[str]) -> bool:
        if not product_ids or len(product_ids) > MAX_BULK_DELETE_SIZE:
            return False
        return self.get_quota_status(manager_id).operations_remaining >= len(product_ids)

    def can_update_price(self, manager_id: str, product_id: str) -> bool:
        return self.remaining_price_updates(manager_id, product_id) > 0

    def remaining_price_updates(self, manager_id: str, product_id: str) -> int:
        return self.get_quota_status(manager_id).price_updates_remaining(product_id)

    def validate_single_operation(
        self, manager_id: str, operation: OperationType, product_id: str
    ) -> None:
        """Raise ValidationError if *operation* on one product breaks a rule."""
        self._check(self.get_quota_status(manager_id), operation, [product_id])

    def validate_bulk_operation(
        self, manager_id: str, operation: OperationType, product_ids: Sequence[str]
    ) -> None:
        """Raise ValidationError if *operation* on *product_ids* breaks a rule."""
        if not product_ids:
            raise ValidationError("Product IDs list cannot be empty")
        self._check(self.get_quota_status(manager_id), operation, list(product_ids))

    # --- Recording ------------------------------------------------------------

    def record_operation(
        self, manager_id: str, operation: OperationType, product_ids: Sequence[str]
    ) -> list[OperationRecord]:
        """Validate and append one record per product id.

        Raises ValidationError when the operation would break a daily rule;
        nothing is recorded in that case.
        """
        if not manager_id or not manager_id.strip():
            raise ValidationError("Manager ID is required")
        if not product_ids:
            raise ValidationError("Product IDs list cannot be empty")

        now = self._clock.now()
        day = now.date()
        with self._locks.hold(_quota_key(manager_id, day)):
            status = self.get_quota_status(manager_id, day)
            # The caller holds the edit session while recording its own edit.
            self._check(status, operation, list(product_ids), session_aware=False)
            records = [
                OperationRecord(manager_id, operation, product_id, now, day)
                for product_id in product_ids
            ]
            self._log.append(records)

        logger.info(
            "quota.operation_recorded",
            manager_id=manager_id,
            operation=operation.value,
            products=len(records),
            used_before=status.operations_used,
        )
        return records

    # --- Edit sessions --------------------------------------------------------

    def has_active_edit_session(self, manager_id: str) -> bool:
        return self._open_session(manager_id) is not None

    def start_edit_session(self, manager_id: str, product_id: str) -> EditSession:
        with self._locks.hold(_session_key(manager_id)):
            current = self._open_session(manager_id)
            if current is not None:
                raise ValidationError(
                    f"Manager {manager_id} already has an active edit session "
                    f"for product {current.product_id}; only 1 concurrent edit is allowed"
                )
            now = self._clock.now()
            session = EditSession(manager_id, product_id, now, now + self._session_timeout)
            self._sessions.save(session)

        logger.info("quota.edit_session_started", manager_id=manager_id, product_id=product_id)
        return session

    def end_edit_session(self, manager_id: str, product_id: str | None = None) -> None:
        with self._locks.hold(_session_key(manager_id)):
            current = self._sessions.get(manager_id)
            if current is None:
                return
            if product_id is not None and current.product_id != product_id:
                raise ValidationError(
                    f"Manager {manager_id}'s edit session is for product "
                    f"{current.product_id}, not {product_id}"
                )
            self._sessions.delete(manager_id)

        logger.info(
            "quota.edit_session_ended", manager_id=manager_id, product_id=current.product_id
        )

    # --- Status ---------------------------------------------------------------

    def get_quota_status(self, manager_id: str, day: date | None = None) -> QuotaStatus:
        day = day or self._clock.today()
        counts: Counter[OperationType] = Counter()
        price_updates: Counter[str] = Counter()
        for record in self._log.list_for_manager(manager_id, day):
            counts[record.operation_type] += 1
            if record.operation_type is OperationType.PRICE_UPDATE:
                price_updates[record.product_id] += 1

        session = self._open_session(manager_id)
        return QuotaStatus(
            manager_id=manager_id,
            day=day,
            operations_used=sum(counts[t] for t in QUOTA_COUNTED_TYPES),
            additions=counts[OperationType.ADD],
            edits=counts[OperationType.EDIT],
            deletions=counts[OperationType.DELETE] + counts[OperationType.BULK_DELETE],
            price_updates=counts[OperationType.PRICE_UPDATE],
            price_updates_by_product=dict(price_updates),
            has_active_edit_session=session is not None,
            active_edit_product_id=session.product_id if session else None,
        )

    # --- Internal helpers -----------------------------------------------------

    def _open_session(self, manager_id: str) -> EditSession | None:
        session = self._sessions.get(manager_id)
        if session is None or not session.is_open(self._clock.now()):
            return None
        return session

    @staticmethod
    def _check(
        status: QuotaStatus,
        operation: OperationType,
        product_ids: list[str],
        session_aware: bool = True,
    ) -> None:
        requested = len(product_ids)

        if operation is OperationType.ADD:
            return

        if operation is OperationType.PRICE_UPDATE:
            for product_id, wanted in Counter(product_ids).items():
                if status.price_updates_remaining(product_id) < wanted:
                    used = status.price_updates_by_product.get(product_id, 0)
                    raise ValidationError(
                        f"Daily price update limit exceeded for product {product_id}: "
                        f"{used} updates today, maximum "
                        f"{MAX_PRICE_UPDATES_PER_PRODUCT_PER_DAY} per product per day"
                    )
            return

        if operation in (OperationType.DELETE, OperationType.BULK_DELETE):
            if requested > MAX_BULK_DELETE_SIZE:
                raise ValidationError(
                    f"Cannot delete {requested} products at once. "
                    f"Maximum allowed: {MAX_BULK_DELETE_SIZE} per operation"
                )
        elif operation is OperationType.EDIT:
            if session_aware and status.has_active_edit_session:
                raise ValidationError(
                    f"Cannot start edit. Active edit session exists for product: "
                    f"{status.active_edit_product_id}"
                )
        else:
            raise ValidationError(f"Unsupported operation type: {operation.value}")

        if status.operations_remaining < requested:
            raise ValidationError(
                f"{operation.value} of {requested} product(s) exceeds the daily limit of "
                f"{DAILY_OPERATIONS_LIMIT} edit/delete operations "
                f"(used {status.operations_used}, remaining {status.operations_remaining})"
            )


def _quota_key(manager_id: str, day: date) -> str:
    return f"quota:{manager_id}:{day.isoformat()}"


def _session_key(manager_id: str) -> str:
    return f"edit-session:{manager_id}"
