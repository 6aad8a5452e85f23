"""In-memory fake repositories and collaborators for testing.

These implement the same abstract interfaces as the JSON repositories
but keep everything in a dict. No file I/O, no side effects. Stored
entities are copied on the way in and out, like a real store would.
"""

from __future__ import annotations

import copy
import threading
from datetime import date, datetime, timedelta, timezone

from mediastore.domain.exceptions import ValidationError
from mediastore.domain.model.operation import EditSession, OperationRecord
from mediastore.domain.model.order import Order, OrderStatus, StateTransitionRecord
from mediastore.domain.model.product import Product
from mediastore.domain.model.reservation import Reservation, ReservationState
from mediastore.domain.model.value_objects import Money
from mediastore.domain.repository.operation_log_repository import (
    EditSessionRepository,
    OperationLogRepository,
)
from mediastore.domain.repository.order_repository import OrderRepository
from mediastore.domain.repository.product_repository import ProductRepository
from mediastore.domain.repository.reservation_repository import ReservationRepository
from mediastore.domain.repository.transition_history_repository import (
    TransitionHistoryRepository,
)
from mediastore.domain.service.clock import Clock
from mediastore.domain.service.locking import KeyedLock
from mediastore.domain.service.notifications import Notifier
from mediastore.domain.service.operation_quota_service import OperationQuotaService
from mediastore.domain.service.order_state_machine import OrderStateMachine
from mediastore.domain.service.price_constraints import PriceManagementService
from mediastore.domain.service.stock_reservation_ledger import StockReservationLedger
from mediastore.domain.service.stock_validation_service import StockValidationService


class FakeClock(Clock):

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def advance(self, **delta: float) -> None:
        with self._lock:
            self._now += timedelta(**delta)

    def set(self, when: datetime) -> None:
        with self._lock:
            self._now = when


class FakeProductRepository(ProductRepository):

    def __init__(self, products: list[Product] | None = None) -> None:
        self._store: dict[str, Product] = {}
        for p in products or []:
            self._store[p.id] = copy.deepcopy(p)

    def get_by_id(self, product_id: str) -> Product | None:
        return copy.deepcopy(self._store.get(product_id))

    def list_all(self) -> list[Product]:
        return [copy.deepcopy(p) for p in self._store.values()]

    def save(self, product: Product) -> None:
        self._store[product.id] = copy.deepcopy(product)

    def delete(self, product_id: str) -> None:
        self._store.pop(product_id, None)


class FakeOrderRepository(OrderRepository):

    def __init__(self) -> None:
        self._store: dict[int, Order] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def next_id(self) -> int:
        return self._next_id

    def get_by_id(self, order_id: int) -> Order | None:
        return copy.deepcopy(self._store.get(order_id))

    def list_by_status(self, status: OrderStatus) -> list[Order]:
        return [copy.deepcopy(o) for o in self._store.values() if o.status is status]

    def save(self, order: Order) -> None:
        with self._lock:
            if order.id is None:
                order.id = self._next_id
                self._next_id += 1
            self._store[order.id] = copy.deepcopy(order)


class FakeReservationRepository(ReservationRepository):

    def __init__(self) -> None:
        self._store: dict[str, Reservation] = {}
        self._lock = threading.Lock()

    def get(self, reservation_id: str) -> Reservation | None:
        with self._lock:
            return copy.deepcopy(self._store.get(reservation_id))

    def add(self, reservation: Reservation) -> None:
        with self._lock:
            if reservation.id in self._store:
                raise ValidationError(f"Reservation {reservation.id} already exists")
            self._store[reservation.id] = copy.deepcopy(reservation)

    def save(self, reservation: Reservation) -> None:
        with self._lock:
            self._store[reservation.id] = copy.deepcopy(reservation)

    def list_by_state(self, state: ReservationState) -> list[Reservation]:
        with self._lock:
            return [copy.deepcopy(r) for r in self._store.values() if r.state is state]

    def list_active_for_product(self, product_id: str) -> list[Reservation]:
        with self._lock:
            return [
                copy.deepcopy(r)
                for r in self._store.values()
                if r.product_id == product_id and r.state is ReservationState.ACTIVE
            ]


class FakeTransitionHistoryRepository(TransitionHistoryRepository):

    def __init__(self) -> None:
        self.records: list[StateTransitionRecord] = []
        self._lock = threading.Lock()

    def append(self, record: StateTransitionRecord) -> None:
        with self._lock:
            self.records.append(record)

    def list_for_order(self, order_id: int) -> list[StateTransitionRecord]:
        return [r for r in self.records if r.order_id == order_id]

    def list_between(self, start: datetime, end: datetime) -> list[StateTransitionRecord]:
        return [r for r in self.records if start <= r.timestamp < end]


class FakeOperationLogRepository(OperationLogRepository):

    def __init__(self) -> None:
        self.records: list[OperationRecord] = []
        self._lock = threading.Lock()

    def append(self, records: list[OperationRecord]) -> None:
        with self._lock:
            self.records.extend(records)

    def list_for_manager(self, manager_id: str, day: date) -> list[OperationRecord]:
        with self._lock:
            return [r for r in self.records if r.manager_id == manager_id and r.day == day]


class FakeEditSessionRepository(EditSessionRepository):

    def __init__(self) -> None:
        self._store: dict[str, EditSession] = {}

    def get(self, manager_id: str) -> EditSession | None:
        return self._store.get(manager_id)

    def save(self, session: EditSession) -> None:
        self._store[session.manager_id] = session

    def delete(self, manager_id: str) -> None:
        self._store.pop(manager_id, None)


class RecordingNotifier(Notifier):

    def __init__(self) -> None:
        self.status_changes: list[tuple[int, OrderStatus, OrderStatus, str]] = []
        self.rejections: list[tuple[str, str, str]] = []

    def order_status_changed(self, order, from_status, to_status, note) -> None:
        self.status_changes.append((order.id, from_status, to_status, note))

    def operation_rejected(self, manager_id, operation, message) -> None:
        self.rejections.append((manager_id, operation, message))


class FailingNotifier(Notifier):

    def order_status_changed(self, order, from_status, to_status, note) -> None:
        raise RuntimeError("mail server down")

    def operation_rejected(self, manager_id, operation, message) -> None:
        raise RuntimeError("mail server down")


# --- Wiring -------------------------------------------------------------------


def make_product(
    product_id: str, name: str, stock: int, price: str = "100000", value: str = "100000"
) -> Product:
    return Product(id=product_id, name=name, stock=stock, price=Money.of(price), value=Money.of(value))


class FakeCore:
    """Every domain service wired to in-memory fakes and one FakeClock."""

    def __init__(
        self,
        products: list[Product] | None = None,
        notifier: Notifier | None = None,
        lock_timeout: float = 5.0,
    ) -> None:
        self.clock = FakeClock()
        self.locks = KeyedLock(lock_timeout)
        self.notifier = notifier if notifier is not None else RecordingNotifier()
        self.product_repo = FakeProductRepository(products)
        self.order_repo = FakeOrderRepository()
        self.reservation_repo = FakeReservationRepository()
        self.history_repo = FakeTransitionHistoryRepository()
        self.operation_log = FakeOperationLogRepository()
        self.edit_sessions = FakeEditSessionRepository()

        self.ledger = StockReservationLedger(
            self.product_repo, self.reservation_repo, self.clock, locks=self.locks
        )
        self.stock_validation = StockValidationService(self.product_repo, self.ledger)
        self.quotas = OperationQuotaService(
            self.operation_log, self.edit_sessions, self.clock, locks=self.locks
        )
        self.price_service = PriceManagementService(self.quotas)
        self.state_machine = OrderStateMachine(
            self.order_repo,
            self.history_repo,
            self.stock_validation,
            self.ledger,
            self.clock,
            notifier=self.notifier,
            locks=self.locks,
        )
