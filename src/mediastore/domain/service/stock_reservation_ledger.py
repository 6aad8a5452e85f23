"""Domain service: Stock Reservation Ledger.

The ledger is the single writer of actual stock and of reservation state.
It keeps the invariant

    available(p) = stock(p) - sum(quantity of active reservations for p) >= 0

by doing every check-then-write for a product inside that product's
critical section. Reads never lock; they skip reservations whose TTL has
passed even if their stored state still says ACTIVE.

Lock order is always reservation key first, then product key.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import ExitStack
from datetime import datetime

import structlog

from mediastore.domain.exceptions import (
    EntityNotFoundError,
    InventoryError,
    ValidationError,
)
from mediastore.domain.model.product import Product
from mediastore.domain.model.reservation import Reservation, ReservationState
from mediastore.domain.repository.product_repository import ProductRepository
from mediastore.domain.repository.reservation_repository import ReservationRepository
from mediastore.domain.service.clock import Clock
from mediastore.domain.service.locking import KeyedLock

logger = structlog.get_logger(__name__)

DEFAULT_RESERVATION_TTL_MINUTES = 15


class StockReservationLedger:

    def __init__(
        self,
        product_repo: ProductRepository,
        reservation_repo: ReservationRepository,
        clock: Clock,
        locks: KeyedLock | None = None,
        default_ttl_minutes: int = DEFAULT_RESERVATION_TTL_MINUTES,
    ) -> None:
        if default_ttl_minutes <= 0:
            raise ValidationError("Default reservation TTL must be positive")
        self._product_repo = product_repo
        self._reservation_repo = reservation_repo
        self._clock = clock
        self._locks = locks or KeyedLock()
        self._default_ttl = default_ttl_minutes

    # --- Mutations ------------------------------------------------------------

    def reserve_stock(
        self,
        product_id: str,
        quantity: int,
        reservation_id: str,
        ttl_minutes: int | None = None,
    ) -> bool:
        """Hold *quantity* units of a product for *ttl_minutes*.

        Returns False, without side effects, when fewer than *quantity*
        units are available. Raises ValidationError on bad arguments or a
        reused reservation id, EntityNotFoundError on an unknown product.
        """
        ttl = self._default_ttl if ttl_minutes is None else ttl_minutes
        _require_id(product_id, "Product ID")
        _require_id(reservation_id, "Reservation ID")
        if quantity <= 0:
            raise ValidationError("Reservation quantity must be positive")
        if ttl <= 0:
            raise ValidationError("Reservation TTL must be a positive number of minutes")

        log = logger.bind(
            product_id=product_id, reservation_id=reservation_id, quantity=quantity
        )

        with self._locks.hold(_reservation_key(reservation_id)):
            if self._reservation_repo.get(reservation_id) is not None:
                raise ValidationError(f"Reservation {reservation_id} already exists")

            with self._locks.hold(_product_key(product_id)):
                product = self._load_product(product_id)
                now = self._clock.now()
                available = self._available(product, now)
                if available < quantity:
                    log.warning(
                        "reservation.insufficient_stock",
                        available=available,
                    )
                    return False

                reservation = Reservation.open(
                    reservation_id, product_id, quantity, now, ttl
                )
                self._reservation_repo.add(reservation)

        log.info("reservation.created", expires_at=reservation.expires_at.isoformat())
        return True

    def confirm_reservation(self, reservation_id: str) -> Reservation:
        """Commit a hold: decrement actual stock once and mark it CONFIRMED."""
        if not reservation_id or not reservation_id.strip():
            raise InventoryError("Reservation ID cannot be empty")

        with self._locks.hold(_reservation_key(reservation_id)):
            reservation = self._reservation_repo.get(reservation_id)
            if reservation is None:
                raise InventoryError(f"Reservation {reservation_id} not found")
            if reservation.is_terminal:
                raise InventoryError(
                    f"Reservation {reservation_id} is already {reservation.state.value}"
                )

            with self._locks.hold(_product_key(reservation.product_id)):
                now = self._clock.now()
                if reservation.is_expired(now):
                    reservation.expire()
                    self._reservation_repo.save(reservation)
                    logger.info("reservation.expired", reservation_id=reservation_id)
                    raise InventoryError(f"Reservation {reservation_id} has expired")

                product = self._product_repo.get_by_id(reservation.product_id)
                if product is None:
                    raise InventoryError(
                        f"Product {reservation.product_id} not found for "
                        f"reservation {reservation_id}"
                    )

                product.decrement_stock(reservation.quantity)
                reservation.confirm()
                self._product_repo.save(product)
                self._reservation_repo.save(reservation)

        logger.info(
            "reservation.confirmed",
            reservation_id=reservation_id,
            product_id=reservation.product_id,
            quantity=reservation.quantity,
            stock_after=product.stock,
        )
        return reservation

    def release_reservation(self, reservation_id: str) -> bool:
        """Drop a hold without touching actual stock.

        Idempotent: returns False when there was nothing active to release.
        """
        if not reservation_id or not reservation_id.strip():
            return False

        with self._locks.hold(_reservation_key(reservation_id)):
            reservation = self._reservation_repo.get(reservation_id)
            if reservation is None or reservation.is_terminal:
                logger.debug(
                    "reservation.release_skipped",
                    reservation_id=reservation_id,
                    state=reservation.state.value if reservation else None,
                )
                return False

            with self._locks.hold(_product_key(reservation.product_id)):
                reservation.release()
                self._reservation_repo.save(reservation)

        logger.info(
            "reservation.released",
            reservation_id=reservation_id,
            product_id=reservation.product_id,
            quantity=reservation.quantity,
        )
        return True

    def restock_confirmed(self, reservation_id: str) -> bool:
        """Put a confirmed reservation's units back into actual stock.

        Used when an order is cancelled after its stock was committed. The
        reservation moves to RETURNED, so a second call returns False.
        """
        with self._locks.hold(_reservation_key(reservation_id)):
            reservation = self._reservation_repo.get(reservation_id)
            if reservation is None or reservation.state is not ReservationState.CONFIRMED:
                return False

            with self._locks.hold(_product_key(reservation.product_id)):
                product = self._load_product(reservation.product_id)
                product.increment_stock(reservation.quantity)
                reservation.return_to_stock()
                self._product_repo.save(product)
                self._reservation_repo.save(reservation)

        logger.info(
            "reservation.returned_to_stock",
            reservation_id=reservation_id,
            product_id=reservation.product_id,
            quantity=reservation.quantity,
            stock_after=product.stock,
        )
        return True

    def set_actual_stock(self, product_id: str, quantity: int) -> Product:
        """Restock or correct a product's actual stock.

        Refuses values below what is currently held by active reservations,
        which would make available stock negative.
        """
        if quantity < 0:
            raise ValidationError("Stock quantity cannot be negative")

        with self._locks.hold(_product_key(product_id)):
            product = self._load_product(product_id)
            reserved = self._reserved(product_id, self._clock.now())
            if quantity < reserved:
                raise InventoryError(
                    f"Cannot set stock of {product.name} to {quantity}: "
                    f"{reserved} units are held by active reservations"
                )
            previous = product.stock
            product.set_stock(quantity)
            self._product_repo.save(product)

        logger.info(
            "stock.adjusted", product_id=product_id, previous=previous, current=quantity
        )
        return product

    def update_product(self, product_id: str, change: Callable[[Product], None]) -> Product:
        """Apply a catalog change (name, price) under the product's lock.

        Stock is off limits here; use ``set_actual_stock``.
        """
        with self._locks.hold(_product_key(product_id)):
            product = self._load_product(product_id)
            stock_before = product.stock
            change(product)
            if product.stock != stock_before:
                raise ValidationError("Stock can only be changed through set_actual_stock")
            self._product_repo.save(product)
        return product

    def remove_products(self, product_ids: list[str]) -> int:
        """Delete products that no active reservation is holding.

        All or nothing: every product lock is taken (in sorted order) and
        every id checked before the first delete.
        """
        ids = sorted(set(product_ids))
        with ExitStack() as stack:
            for product_id in ids:
                stack.enter_context(self._locks.hold(_product_key(product_id)))

            now = self._clock.now()
            held = []
            for product_id in ids:
                product = self._load_product(product_id)
                reserved = self._reserved(product_id, now)
                if reserved:
                    held.append(f"{product.name} ({reserved})")
            if held:
                raise InventoryError(
                    f"Cannot delete {', '.join(held)}: units are held "
                    f"by active reservations"
                )

            for product_id in ids:
                self._product_repo.delete(product_id)

        logger.info("product.deleted", product_ids=ids)
        return len(ids)

    def cleanup_expired_reservations(self) -> int:
        """Mark every ACTIVE reservation past its TTL as EXPIRED."""
        cleaned = 0
        for candidate in self._reservation_repo.list_by_state(ReservationState.ACTIVE):
            if not candidate.is_expired(self._clock.now()):
                continue
            with self._locks.hold(_reservation_key(candidate.id)):
                reservation = self._reservation_repo.get(candidate.id)
                # Re-check: it may have been confirmed or released meanwhile.
                if reservation is None or reservation.is_terminal:
                    continue
                if not reservation.is_expired(self._clock.now()):
                    continue
                with self._locks.hold(_product_key(reservation.product_id)):
                    reservation.expire()
                    self._reservation_repo.save(reservation)
            cleaned += 1
            logger.debug("reservation.expired", reservation_id=reservation.id)

        if cleaned:
            logger.info("reservation.cleanup_completed", expired=cleaned)
        return cleaned

    # --- Queries --------------------------------------------------------------

    def is_stock_available(self, product_id: str, quantity: int) -> bool:
        return self.get_available_stock(product_id) >= quantity

    def get_available_stock(self, product_id: str) -> int:
        product = self._load_product(product_id)
        return self._available(product, self._clock.now())

    def get_reserved_stock(self, product_id: str) -> int:
        self._load_product(product_id)
        return self._reserved(product_id, self._clock.now())

    def get_reservation(self, reservation_id: str) -> Reservation | None:
        return self._reservation_repo.get(reservation_id)

    def get_active_reservations(self) -> list[Reservation]:
        """Reservations still holding stock right now, oldest first."""
        now = self._clock.now()
        active = [
            r
            for r in self._reservation_repo.list_by_state(ReservationState.ACTIVE)
            if r.is_active(now)
        ]
        return sorted(active, key=lambda r: (r.created_at, r.id))

    # --- Internal helpers -----------------------------------------------------

    def _load_product(self, product_id: str) -> Product:
        product = self._product_repo.get_by_id(product_id)
        if product is None:
            raise EntityNotFoundError(f"Product with ID '{product_id}' not found")
        return product

    def _reserved(self, product_id: str, now: datetime) -> int:
        return sum(
            r.quantity
            for r in self._reservation_repo.list_active_for_product(product_id)
            if r.is_active(now)
        )

    def _available(self, product: Product, now: datetime) -> int:
        available = product.stock - self._reserved(product.id, now)
        if available < 0:
            # Only reachable if stock was changed behind the ledger's back.
            logger.error(
                "stock.invariant_violated", product_id=product.id, available=available
            )
            return 0
        return available


def _product_key(product_id: str) -> str:
    return f"product:{product_id}"


def _reservation_key(reservation_id: str) -> str:
    return f"reservation:{reservation_id}"


def _require_id(value: str, label: str) -> None:
    if not value or not value.strip():
        raise ValidationError(f"{label} cannot be empty")
