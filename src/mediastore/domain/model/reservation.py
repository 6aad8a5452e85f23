"""Reservation entity: a TTL-bound hold on part of a product's stock."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from mediastore.domain.exceptions import ValidationError


class ReservationState(Enum):
    ACTIVE = "ACTIVE"
    CONFIRMED = "CONFIRMED"
    RELEASED = "RELEASED"
    EXPIRED = "EXPIRED"
    RETURNED = "RETURNED"


@dataclass
class Reservation:
    """A hold created by the ledger and owned by it until terminal.

    Invariants:
    - an ACTIVE reservation has ``quantity > 0``
    - an ACTIVE reservation has ``expires_at > created_at``
    """

    id: str
    product_id: str
    quantity: int
    created_at: datetime
    expires_at: datetime
    state: ReservationState = ReservationState.ACTIVE

    def __post_init__(self) -> None:
        if self.state is ReservationState.ACTIVE:
            if self.quantity <= 0:
                raise ValidationError("Reservation quantity must be positive")
            if self.expires_at <= self.created_at:
                raise ValidationError("Reservation must expire after it is created")

    @staticmethod
    def open(
        reservation_id: str,
        product_id: str,
        quantity: int,
        now: datetime,
        ttl_minutes: int,
    ) -> Reservation:
        return Reservation(
            id=reservation_id,
            product_id=product_id,
            quantity=quantity,
            created_at=now,
            expires_at=now + timedelta(minutes=ttl_minutes),
        )

    # --- Queries --------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.state is not ReservationState.ACTIVE

    def is_expired(self, now: datetime) -> bool:
        """True once an ACTIVE hold has outlived its TTL.

        Stored state may still say ACTIVE until a sweep runs; readers use
        this check so expired holds stop counting immediately.
        """
        if self.state is ReservationState.EXPIRED:
            return True
        return self.state is ReservationState.ACTIVE and now >= self.expires_at

    def is_active(self, now: datetime) -> bool:
        return self.state is ReservationState.ACTIVE and now < self.expires_at

    # --- Transitions ----------------------------------------------------------

    def confirm(self) -> None:
        self._leave_active(ReservationState.CONFIRMED)

    def release(self) -> None:
        self._leave_active(ReservationState.RELEASED)

    def expire(self) -> None:
        self._leave_active(ReservationState.EXPIRED)

    def return_to_stock(self) -> None:
        """A committed hold whose units went back on the shelf (order cancelled)."""
        if self.state is not ReservationState.CONFIRMED:
            raise ValidationError(
                f"Reservation {self.id} is {self.state.value}, expected CONFIRMED"
            )
        self.state = ReservationState.RETURNED

    def _leave_active(self, target: ReservationState) -> None:
        if self.state is not ReservationState.ACTIVE:
            raise ValidationError(
                f"Reservation {self.id} is {self.state.value}, expected ACTIVE"
            )
        self.state = target
