"""Domain service: Order State Machine.

Drives an order through

    CREATED -> PENDING_PROCESSING -> APPROVED -> SHIPPING -> DELIVERED
                                  \\-> REJECTED
    PENDING_PROCESSING | APPROVED -> CANCELLED

Every attempt, successful or not, appends a StateTransitionRecord.
Transitions on one order are serialized on a per-order lock held from
load to save, so two callers can never both move an order out of the
same status. Approval reserves stock for every item or for none.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterator
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4

import structlog

from mediastore.domain.exceptions import (
    ConcurrencyConflictError,
    DomainException,
    EntityNotFoundError,
    InventoryError,
    ValidationError,
)
from mediastore.domain.model.actor import Actor, Role
from mediastore.domain.model.order import (
    VALID_TRANSITIONS,
    Order,
    OrderLineItem,
    OrderStatus,
    StateTransitionRecord,
)
from mediastore.domain.model.reservation import ReservationState
from mediastore.domain.repository.order_repository import OrderRepository
from mediastore.domain.repository.transition_history_repository import (
    TransitionHistoryRepository,
)
from mediastore.domain.service.clock import Clock
from mediastore.domain.service.locking import KeyedLock
from mediastore.domain.service.notifications import Notifier
from mediastore.domain.service.stock_reservation_ledger import StockReservationLedger
from mediastore.domain.service.stock_validation_service import (
    BulkStockValidationResult,
    StockValidationService,
)

logger = structlog.get_logger(__name__)

DEFAULT_APPROVAL_RESERVATION_TTL_MINUTES = 60

# Which roles may move an order *into* each status.
ROLE_PERMISSIONS: dict[OrderStatus, frozenset[Role]] = {
    OrderStatus.PENDING_PROCESSING: frozenset({Role.CUSTOMER, Role.SYSTEM}),
    OrderStatus.APPROVED: frozenset({Role.PRODUCT_MANAGER}),
    OrderStatus.REJECTED: frozenset({Role.PRODUCT_MANAGER}),
    OrderStatus.SHIPPING: frozenset({Role.PRODUCT_MANAGER, Role.SYSTEM}),
    OrderStatus.DELIVERED: frozenset({Role.PRODUCT_MANAGER, Role.SYSTEM}),
    OrderStatus.CANCELLED: frozenset({Role.CUSTOMER, Role.SYSTEM}),
}

TRANSITION_DESCRIPTIONS: dict[OrderStatus, str] = {
    OrderStatus.PENDING_PROCESSING: "Submit for approval",
    OrderStatus.APPROVED: "Product manager approval",
    OrderStatus.REJECTED: "Product manager rejection",
    OrderStatus.SHIPPING: "Begin shipping process",
    OrderStatus.DELIVERED: "Order delivered successfully",
    OrderStatus.CANCELLED: "Order cancellation",
}

SUBMITTED_FOR_APPROVAL = "SUBMITTED_FOR_APPROVAL"
PRODUCT_MANAGER_APPROVAL = "PRODUCT_MANAGER_APPROVAL"


@dataclass(frozen=True)
class TransitionValidation:
    is_valid: bool
    order_id: int
    from_status: OrderStatus
    to_status: OrderStatus
    violations: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.is_valid:
            return "State transition validation passed"
        return "; ".join(self.violations)


@dataclass(frozen=True)
class TransitionResult:
    success: bool
    order_id: int
    from_status: OrderStatus | None
    to_status: OrderStatus
    performed_by: str
    timestamp: datetime
    reason: str
    notes: str
    transition_id: str
    message: str

    @staticmethod
    def from_record(record: StateTransitionRecord, message: str) -> TransitionResult:
        return TransitionResult(
            success=record.success,
            order_id=record.order_id,
            from_status=record.from_status,
            to_status=record.to_status,
            performed_by=record.performed_by,
            timestamp=record.timestamp,
            reason=record.reason,
            notes=record.notes,
            transition_id=record.transition_id,
            message=message,
        )


@dataclass(frozen=True)
class ApprovalResult:
    """Outcome of an approval attempt: the transition and the stock check."""

    approved: bool
    transition: TransitionResult
    stock_validation: BulkStockValidationResult
    stock_reserved: bool
    reservation_id: str | None
    message: str
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class TransitionStatistics:
    start: datetime
    end: datetime
    total_transitions: int
    failed_attempts: int
    transition_counts: dict[str, int]
    approvals: int
    rejections: int
    manager_activity: dict[str, int]
    top_rejection_reasons: list[str]


class OrderStateMachine:

    def __init__(
        self,
        order_repo: OrderRepository,
        history_repo: TransitionHistoryRepository,
        stock_validation: StockValidationService,
        ledger: StockReservationLedger,
        clock: Clock,
        notifier: Notifier | None = None,
        locks: KeyedLock | None = None,
        approval_ttl_minutes: int = DEFAULT_APPROVAL_RESERVATION_TTL_MINUTES,
    ) -> None:
        self._order_repo = order_repo
        self._history = history_repo
        self._stock = stock_validation
        self._ledger = ledger
        self._clock = clock
        self._notifier = notifier
        self._locks = locks or KeyedLock()
        self._approval_ttl = approval_ttl_minutes

    # --- Named transitions ----------------------------------------------------

    def submit_for_approval(self, order_id: int, submitted_by: Actor) -> TransitionResult:
        return self.transition_order_state(
            order_id,
            OrderStatus.PENDING_PROCESSING,
            submitted_by,
            SUBMITTED_FOR_APPROVAL,
            "Order submitted for product manager approval",
        )

    def approve_order(self, order_id: int, manager: Actor, notes: str = "") -> ApprovalResult:
        """Check stock, reserve it for every item, then move to APPROVED.

        Insufficient stock, or losing a reservation race part-way, yields a
        failed ApprovalResult; the order stays PENDING_PROCESSING and holds
        no reservations. Graph or role violations raise ValidationError.
        """
        target = OrderStatus.APPROVED
        reason = PRODUCT_MANAGER_APPROVAL
        log = logger.bind(order_id=order_id, manager_id=manager.id)
        log.info("order.approval_started")

        with self._serialized(order_id, target, manager, reason):
            order = self._load(order_id)
            from_status = order.status
            self._ensure_allowed(order, target, manager, reason, notes)

            stock = self._stock.validate_order_items_stock(order.items)
            warnings = _low_stock_warnings(stock)
            if not stock.all_valid:
                message = "Cannot approve order due to insufficient stock: " + "; ".join(
                    f.message for f in stock.failures
                )
                record = self._record(order_id, from_status, target, manager, reason,
                                      f"FAILED: {message}", success=False)
                log.warning("order.approval_rejected_stock", failed=len(stock.failures))
                return ApprovalResult(
                    approved=False,
                    transition=TransitionResult.from_record(record, message),
                    stock_validation=stock,
                    stock_reserved=False,
                    reservation_id=None,
                    message=message,
                    warnings=warnings,
                )

            reservation_id = f"order-{order_id}-{uuid4().hex[:8]}"
            try:
                unreserved = self._reserve_all(order.items, reservation_id)
            except DomainException as exc:
                self._record(order_id, from_status, target, manager, reason,
                             f"FAILED: {exc}", success=False)
                log.warning("order.approval_failed", error=str(exc))
                raise
            if unreserved is not None:
                message = (
                    f"Failed to reserve stock for {unreserved.product_name}; "
                    f"all reservations for this order were released"
                )
                record = self._record(order_id, from_status, target, manager, reason,
                                      f"FAILED: {message}", success=False)
                log.warning("order.approval_reservation_failed", product_id=unreserved.product_id)
                return ApprovalResult(
                    approved=False,
                    transition=TransitionResult.from_record(record, message),
                    stock_validation=stock,
                    stock_reserved=False,
                    reservation_id=None,
                    message=message,
                    warnings=warnings,
                )

            order.reservation_id = reservation_id
            try:
                record = self._commit(order, target, manager, reason, notes)
            except Exception:
                for rid in order.reservation_ids():
                    self._ledger.release_reservation(rid)
                raise

        log.info("order.approved", reservation_id=reservation_id)
        self._notify(order, from_status, target, f"Order approved by Product Manager: {manager.id}")
        return ApprovalResult(
            approved=True,
            transition=TransitionResult.from_record(record, "Order approved"),
            stock_validation=stock,
            stock_reserved=True,
            reservation_id=reservation_id,
            message="Order approved",
            warnings=warnings,
        )

    def reject_order(
        self, order_id: int, manager: Actor, reason: str, notes: str = ""
    ) -> TransitionResult:
        if not reason or not reason.strip():
            raise ValidationError("A rejection reason is required")
        detailed = f"Rejection Reason: {reason}"
        if notes:
            detailed += f" | Notes: {notes}"
        return self.transition_order_state(order_id, OrderStatus.REJECTED, manager, reason, detailed)

    # --- Generic entry point --------------------------------------------------

    def transition_order_state(
        self,
        order_id: int,
        to_status: OrderStatus,
        performed_by: Actor,
        reason: str = "",
        notes: str = "",
    ) -> TransitionResult:
        """Move an order to *to_status*, applying that status's side effects.

        APPROVED goes through ``approve_order``; REJECTED and CANCELLED
        release the order's reservations and return units already committed
        by payment; SHIPPING commits them.
        """
        if to_status is OrderStatus.APPROVED:
            return self.approve_order(order_id, performed_by, notes).transition

        effect: Callable[[Order], None] | None = None
        if to_status in (OrderStatus.REJECTED, OrderStatus.CANCELLED):
            effect = self._release_reservations
        elif to_status is OrderStatus.SHIPPING:
            effect = self._confirm_reservations

        reason = reason or TRANSITION_DESCRIPTIONS.get(to_status, "Status update")
        log = logger.bind(order_id=order_id, to_status=to_status.value, actor=str(performed_by))

        with self._serialized(order_id, to_status, performed_by, reason):
            order = self._load(order_id)
            from_status = order.status
            self._ensure_allowed(order, to_status, performed_by, reason, notes)

            if effect is not None:
                try:
                    effect(order)
                except DomainException as exc:
                    self._record(order_id, from_status, to_status, performed_by, reason,
                                 f"FAILED: {exc}", success=False)
                    log.warning("order.transition_failed", error=str(exc))
                    raise

            record = self._commit(order, to_status, performed_by, reason, notes)

        log.info("order.transitioned", from_status=from_status.value)
        self._notify(order, from_status, to_status, notes or reason)
        return TransitionResult.from_record(
            record, f"Order moved from {from_status.value} to {to_status.value}"
        )

    # --- Queries --------------------------------------------------------------

    def validate_state_transition(
        self, order_id: int, to_status: OrderStatus, performed_by: Actor
    ) -> TransitionValidation:
        """Pre-flight check of graph and role rules. Records nothing."""
        return self._validate(self._load(order_id), to_status, performed_by)

    def get_order_state_history(self, order_id: int) -> list[StateTransitionRecord]:
        self._load(order_id)
        records = self._history.list_for_order(order_id)
        return sorted(records, key=lambda r: r.timestamp)

    def get_valid_next_states(self, order_id: int, performed_by: Actor) -> dict[OrderStatus, str]:
        order = self._load(order_id)
        return {
            status: TRANSITION_DESCRIPTIONS[status]
            for status in OrderStatus
            if status in VALID_TRANSITIONS[order.status]
            and self._validate(order, status, performed_by).is_valid
        }

    def get_pending_approval_orders(self) -> list[Order]:
        orders = self._order_repo.list_by_status(OrderStatus.PENDING_PROCESSING)
        logger.info("order.pending_listed", count=len(orders))
        return sorted(orders, key=lambda o: o.created_at)

    def get_transition_statistics(self, start: datetime, end: datetime) -> TransitionStatistics:
        records = self._history.list_between(start, end)
        succeeded = [r for r in records if r.success]

        edges: Counter[str] = Counter()
        managers: Counter[str] = Counter()
        rejection_reasons: Counter[str] = Counter()
        for record in succeeded:
            source = record.from_status.value if record.from_status else "UNKNOWN"
            edges[f"{source}_TO_{record.to_status.value}"] += 1
            if record.to_status is OrderStatus.APPROVED:
                managers[record.performed_by] += 1
            elif record.to_status is OrderStatus.REJECTED:
                rejection_reasons[record.reason] += 1

        return TransitionStatistics(
            start=start,
            end=end,
            total_transitions=len(succeeded),
            failed_attempts=len(records) - len(succeeded),
            transition_counts=dict(edges),
            approvals=sum(managers.values()),
            rejections=sum(rejection_reasons.values()),
            manager_activity=dict(managers),
            top_rejection_reasons=[r for r, _ in rejection_reasons.most_common(5)],
        )

    # --- Side effects ---------------------------------------------------------

    def _reserve_all(self, items: list[OrderLineItem], reservation_id: str) -> OrderLineItem | None:
        """Reserve every item or none; return the item that could not be held."""
        done: list[str] = []
        try:
            for item in items:
                rid = f"{reservation_id}:{item.product_id}"
                if not self._ledger.reserve_stock(
                    item.product_id, item.quantity.value, rid, self._approval_ttl
                ):
                    self._release_all(done)
                    return item
                done.append(rid)
        except Exception:
            self._release_all(done)
            raise
        return None

    def _release_all(self, reservation_ids: list[str]) -> None:
        for rid in reservation_ids:
            self._ledger.release_reservation(rid)

    def _release_reservations(self, order: Order) -> None:
        """Drop active holds; units already committed by payment go back to stock."""
        released = returned = 0
        for rid in order.reservation_ids():
            if self._ledger.release_reservation(rid):
                released += 1
            elif self._ledger.restock_confirmed(rid):
                returned += 1
        if released or returned:
            logger.info(
                "order.reservations_released",
                order_id=order.id,
                released=released,
                returned_to_stock=returned,
            )

    def _confirm_reservations(self, order: Order) -> None:
        """Commit stock before shipping. Checks every hold before touching any."""
        now = self._clock.now()
        pending: list[str] = []
        for rid in order.reservation_ids():
            reservation = self._ledger.get_reservation(rid)
            if reservation is None:
                raise InventoryError(f"Reservation {rid} for order {order.id} not found")
            if reservation.state is ReservationState.CONFIRMED:
                continue
            if not reservation.is_active(now):
                raise InventoryError(
                    f"Cannot ship order {order.id}: reservation {rid} is no longer active"
                )
            pending.append(rid)
        for rid in pending:
            self._ledger.confirm_reservation(rid)

    # --- Internal helpers -----------------------------------------------------

    @contextmanager
    def _serialized(
        self, order_id: int, to_status: OrderStatus, actor: Actor, reason: str
    ) -> Iterator[None]:
        """Hold the order lock. Only a timeout on this lock is recorded here."""
        with ExitStack() as stack:
            try:
                stack.enter_context(self._locks.hold(_order_key(order_id)))
            except ConcurrencyConflictError as exc:
                self._record(order_id, None, to_status, actor, reason, f"FAILED: {exc}",
                             success=False)
                raise
            yield

    def _load(self, order_id: int) -> Order:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundError(f"Order #{order_id} not found")
        return order

    def _validate(self, order: Order, to_status: OrderStatus, actor: Actor) -> TransitionValidation:
        violations: list[str] = []
        if not order.can_transition_to(to_status):
            violations.append(
                f"Transition from {order.status.value} to {to_status.value} is not allowed"
            )
        if actor.role not in ROLE_PERMISSIONS.get(to_status, frozenset()):
            violations.append(
                f"Role {actor.role.value} may not move an order to {to_status.value}"
            )
        if actor.role is Role.CUSTOMER and actor.id != order.customer_id:
            violations.append("Customers may only act on their own orders")
        return TransitionValidation(
            is_valid=not violations,
            order_id=order.id,  # type: ignore[arg-type]
            from_status=order.status,
            to_status=to_status,
            violations=violations,
        )

    def _ensure_allowed(
        self, order: Order, to_status: OrderStatus, actor: Actor, reason: str, notes: str
    ) -> None:
        validation = self._validate(order, to_status, actor)
        if validation.is_valid:
            return
        self._record(order.id, order.status, to_status, actor, reason,  # type: ignore[arg-type]
                     f"FAILED: {validation.message}", success=False)
        logger.warning(
            "order.transition_refused",
            order_id=order.id,
            from_status=order.status.value,
            to_status=to_status.value,
            actor=str(actor),
            violations=validation.violations,
        )
        raise ValidationError(f"Invalid state transition: {validation.message}")

    def _commit(
        self, order: Order, to_status: OrderStatus, actor: Actor, reason: str, notes: str
    ) -> StateTransitionRecord:
        from_status = order.status
        order.transition_to(to_status, self._clock.now())
        self._order_repo.save(order)
        return self._record(order.id, from_status, to_status, actor, reason, notes,  # type: ignore[arg-type]
                            success=True)

    def _record(
        self,
        order_id: int,
        from_status: OrderStatus | None,
        to_status: OrderStatus,
        actor: Actor,
        reason: str,
        notes: str,
        success: bool,
    ) -> StateTransitionRecord:
        record = StateTransitionRecord(
            transition_id=f"TRANS-{order_id}-{uuid4().hex[:12]}",
            order_id=order_id,
            from_status=from_status,
            to_status=to_status,
            performed_by=actor.id,
            timestamp=self._clock.now(),
            reason=reason,
            notes=notes,
            success=success,
        )
        self._history.append(record)
        return record

    def _notify(self, order: Order, from_status: OrderStatus, to_status: OrderStatus, note: str) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier.order_status_changed(order, from_status, to_status, note)
        except Exception:
            logger.warning(
                "notification.failed",
                order_id=order.id,
                to_status=to_status.value,
                exc_info=True,
            )


def _order_key(order_id: int) -> str:
    return f"order:{order_id}"


def _low_stock_warnings(stock: BulkStockValidationResult) -> list[str]:
    return [
        f"Low stock warning for {r.product_name}: only {r.available_stock} available"
        for r in stock.results
        if r.is_valid and r.available_stock < r.requested_quantity * 2
    ]
