"""Abstract repository for Reservation records.

Only the stock reservation ledger writes through this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from mediastore.domain.model.reservation import Reservation, ReservationState


class ReservationRepository(ABC):

    @abstractmethod
    def get(self, reservation_id: str) -> Reservation | None:
        """Return a reservation by id, or None."""

    @abstractmethod
    def add(self, reservation: Reservation) -> None:
        """Store a new reservation.

        Raises ValidationError if the id is already taken, whatever the
        state of the existing record.
        """

    @abstractmethod
    def save(self, reservation: Reservation) -> None:
        """Persist a state change on an existing reservation."""

    @abstractmethod
    def list_by_state(self, state: ReservationState) -> list[Reservation]:
        """Return every reservation whose stored state is *state*."""

    @abstractmethod
    def list_active_for_product(self, product_id: str) -> list[Reservation]:
        """Return stored-ACTIVE reservations for one product (expired ones included)."""
