"""Unit tests for the Reservation entity and Actor parsing."""

from datetime import datetime, timedelta, timezone

import pytest

from mediastore.domain.exceptions import ValidationError
from mediastore.domain.model.actor import Actor, Role
from mediastore.domain.model.reservation import Reservation, ReservationState

NOW = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


class TestReservation:

    def test_open_sets_expiry(self):
        r = Reservation.open("r-1", "p-1", 3, NOW, 15)
        assert r.state == ReservationState.ACTIVE
        assert r.expires_at == NOW + timedelta(minutes=15)

    def test_zero_quantity_rejected(self):
        with pytest.raises(ValidationError, match="quantity must be positive"):
            Reservation.open("r-1", "p-1", 0, NOW, 15)

    def test_expiry_must_follow_creation(self):
        with pytest.raises(ValidationError, match="expire after"):
            Reservation("r-1", "p-1", 1, NOW, NOW)

    def test_expired_exactly_at_deadline(self):
        r = Reservation.open("r-1", "p-1", 1, NOW, 15)
        deadline = NOW + timedelta(minutes=15)
        assert r.is_active(deadline - timedelta(seconds=1))
        assert not r.is_expired(deadline - timedelta(seconds=1))
        assert r.is_expired(deadline)
        assert not r.is_active(deadline)

    def test_confirmed_is_neither_active_nor_expired(self):
        r = Reservation.open("r-1", "p-1", 1, NOW, 15)
        r.confirm()
        assert r.is_terminal
        assert not r.is_active(NOW)
        assert not r.is_expired(NOW + timedelta(days=1))

    def test_terminal_state_cannot_change(self):
        r = Reservation.open("r-1", "p-1", 1, NOW, 15)
        r.release()
        with pytest.raises(ValidationError, match="expected ACTIVE"):
            r.confirm()

    def test_return_to_stock_only_from_confirmed(self):
        r = Reservation.open("r-1", "p-1", 2, NOW, 15)
        with pytest.raises(ValidationError, match="expected CONFIRMED"):
            r.return_to_stock()
        r.confirm()
        r.return_to_stock()
        assert r.state == ReservationState.RETURNED
        assert r.is_terminal


class TestActor:

    def test_parse_manager_alias(self):
        actor = Actor.parse("pm:alice")
        assert actor == Actor("alice", Role.PRODUCT_MANAGER)
        assert str(actor) == "product_manager:alice"

    def test_parse_rejects_unknown_role(self):
        with pytest.raises(ValidationError, match="Invalid actor"):
            Actor.parse("admin:root")

    def test_blank_id_rejected(self):
        with pytest.raises(ValidationError, match="Actor id is required"):
            Actor.customer(" ")
