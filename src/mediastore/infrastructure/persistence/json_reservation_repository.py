"""JSON-file-backed implementation of ReservationRepository."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from mediastore.domain.exceptions import ValidationError
from mediastore.domain.model.reservation import Reservation, ReservationState
from mediastore.domain.repository.reservation_repository import ReservationRepository
from mediastore.infrastructure.persistence.json_store import JsonFileStore


class JsonReservationRepository(JsonFileStore, ReservationRepository):

    def __init__(self, file_path: Path) -> None:
        super().__init__(file_path, empty={})

    def get(self, reservation_id: str) -> Reservation | None:
        raw = self._load_raw().get(reservation_id)
        return self._to_domain(raw) if raw is not None else None

    def add(self, reservation: Reservation) -> None:
        def change(reservations: dict) -> None:
            if reservation.id in reservations:
                raise ValidationError(f"Reservation {reservation.id} already exists")
            reservations[reservation.id] = self._to_raw(reservation)

        self._update_raw(change)

    def save(self, reservation: Reservation) -> None:
        def change(reservations: dict) -> None:
            reservations[reservation.id] = self._to_raw(reservation)

        self._update_raw(change)

    def list_by_state(self, state: ReservationState) -> list[Reservation]:
        return [
            self._to_domain(raw)
            for raw in self._load_raw().values()
            if raw["state"] == state.value
        ]

    def list_active_for_product(self, product_id: str) -> list[Reservation]:
        return [
            self._to_domain(raw)
            for raw in self._load_raw().values()
            if raw["product_id"] == product_id
            and raw["state"] == ReservationState.ACTIVE.value
        ]

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(reservation: Reservation) -> dict:
        return {
            "id": reservation.id,
            "product_id": reservation.product_id,
            "quantity": reservation.quantity,
            "created_at": reservation.created_at.isoformat(),
            "expires_at": reservation.expires_at.isoformat(),
            "state": reservation.state.value,
        }

    @staticmethod
    def _to_domain(raw: dict) -> Reservation:
        return Reservation(
            id=raw["id"],
            product_id=raw["product_id"],
            quantity=raw["quantity"],
            created_at=datetime.fromisoformat(raw["created_at"]),
            expires_at=datetime.fromisoformat(raw["expires_at"]),
            state=ReservationState(raw["state"]),
        )
