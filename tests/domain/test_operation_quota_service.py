"""Unit tests for the OperationQuotaService domain service."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from mediastore.domain.exceptions import ValidationError
from mediastore.domain.model.operation import OperationType
from tests.fakes import FakeCore


def _quotas():
    core = FakeCore()
    return core, core.quotas


class TestDailyCap:

    def test_thirty_edits_allowed_then_31st_rejected(self):
        core, quotas = _quotas()
        for i in range(30):
            quotas.record_operation("pm1", OperationType.EDIT, [f"p{i}"])

        assert quotas.get_quota_status("pm1").operations_remaining == 0
        assert not quotas.can_edit_product("pm1", "p99")
        with pytest.raises(ValidationError, match="daily limit of 30"):
            quotas.record_operation("pm1", OperationType.EDIT, ["p99"])
        assert len(core.operation_log.records) == 30

    def test_edits_and_deletes_share_the_cap(self):
        _, quotas = _quotas()
        for i in range(25):
            quotas.record_operation("pm1", OperationType.EDIT, [f"e{i}"])

        assert quotas.can_delete_products("pm1", [f"d{i}" for i in range(5)])
        assert not quotas.can_delete_products("pm1", [f"d{i}" for i in range(6)])
        with pytest.raises(ValidationError, match="used 25, remaining 5"):
            quotas.record_operation("pm1", OperationType.BULK_DELETE, [f"d{i}" for i in range(6)])

    def test_additions_are_unlimited(self):
        _, quotas = _quotas()
        for i in range(40):
            quotas.record_operation("pm1", OperationType.ADD, [f"a{i}"])

        status = quotas.get_quota_status("pm1")
        assert status.additions == 40
        assert status.operations_used == 0
        assert quotas.can_add_product("pm1")

    def test_price_updates_do_not_count_toward_cap(self):
        _, quotas = _quotas()
        for i in range(10):
            quotas.record_operation("pm1", OperationType.PRICE_UPDATE, [f"p{i}"])
        assert quotas.get_quota_status("pm1").operations_used == 0

    def test_cap_resets_next_day(self):
        core, quotas = _quotas()
        for i in range(30):
            quotas.record_operation("pm1", OperationType.DELETE, [f"p{i}"])

        core.clock.advance(days=1)

        assert quotas.get_quota_status("pm1").operations_used == 0
        quotas.record_operation("pm1", OperationType.DELETE, ["p99"])

    def test_managers_are_counted_separately(self):
        _, quotas = _quotas()
        for i in range(30):
            quotas.record_operation("pm1", OperationType.EDIT, [f"p{i}"])
        assert quotas.can_edit_product("pm2", "p1")

    def test_concurrent_recorders_cannot_overrun_cap(self):
        core, quotas = _quotas()

        def attempt(i):
            try:
                quotas.record_operation("pm1", OperationType.EDIT, [f"p{i}"])
                return True
            except ValidationError:
                return False

        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(attempt, range(50)))

        assert results.count(True) == 30
        assert len(core.operation_log.records) == 30


class TestBulkDelete:

    def test_eleven_products_rejected(self):
        _, quotas = _quotas()
        ids = [f"p{i}" for i in range(11)]
        assert not quotas.can_delete_products("pm1", ids)
        with pytest.raises(ValidationError, match="Maximum allowed: 10 per operation"):
            quotas.validate_bulk_operation("pm1", OperationType.BULK_DELETE, ids)

    def test_ten_products_accepted_and_counted_individually(self):
        _, quotas = _quotas()
        ids = [f"p{i}" for i in range(10)]

        records = quotas.record_operation("pm1", OperationType.BULK_DELETE, ids)

        assert len(records) == 10
        assert quotas.get_quota_status("pm1").deletions == 10

    def test_empty_list_rejected(self):
        _, quotas = _quotas()
        with pytest.raises(ValidationError, match="cannot be empty"):
            quotas.validate_bulk_operation("pm1", OperationType.BULK_DELETE, [])


class TestPriceUpdateLimit:

    def test_two_per_product_per_day(self):
        _, quotas = _quotas()
        quotas.record_operation("pm1", OperationType.PRICE_UPDATE, ["p1"])
        assert quotas.remaining_price_updates("pm1", "p1") == 1
        quotas.record_operation("pm1", OperationType.PRICE_UPDATE, ["p1"])

        assert not quotas.can_update_price("pm1", "p1")
        assert quotas.can_update_price("pm1", "p2")
        with pytest.raises(ValidationError, match="maximum 2 per product per day"):
            quotas.record_operation("pm1", OperationType.PRICE_UPDATE, ["p1"])

    def test_validate_single_operation(self):
        _, quotas = _quotas()
        quotas.validate_single_operation("pm1", OperationType.PRICE_UPDATE, "p1")
        quotas.record_operation("pm1", OperationType.PRICE_UPDATE, ["p1"])
        quotas.record_operation("pm1", OperationType.PRICE_UPDATE, ["p1"])
        with pytest.raises(ValidationError, match="price update limit"):
            quotas.validate_single_operation("pm1", OperationType.PRICE_UPDATE, "p1")


class TestEditSessions:

    def test_only_one_session_at_a_time(self):
        _, quotas = _quotas()
        quotas.start_edit_session("pm1", "p1")

        assert quotas.has_active_edit_session("pm1")
        with pytest.raises(ValidationError, match="only 1 concurrent edit"):
            quotas.start_edit_session("pm1", "p2")

    def test_active_session_blocks_edit_checks(self):
        _, quotas = _quotas()
        quotas.start_edit_session("pm1", "p1")
        assert not quotas.can_edit_product("pm1", "p2")
        with pytest.raises(ValidationError, match="Active edit session exists for product: p1"):
            quotas.validate_single_operation("pm1", OperationType.EDIT, "p2")

    def test_recording_inside_own_session_is_allowed(self):
        _, quotas = _quotas()
        quotas.start_edit_session("pm1", "p1")
        quotas.record_operation("pm1", OperationType.EDIT, ["p1"])
        assert quotas.get_quota_status("pm1").edits == 1

    def test_end_session(self):
        _, quotas = _quotas()
        quotas.start_edit_session("pm1", "p1")
        quotas.end_edit_session("pm1", "p1")
        assert not quotas.has_active_edit_session("pm1")
        quotas.start_edit_session("pm1", "p2")

    def test_end_session_for_other_product_rejected(self):
        _, quotas = _quotas()
        quotas.start_edit_session("pm1", "p1")
        with pytest.raises(ValidationError, match="not p2"):
            quotas.end_edit_session("pm1", "p2")
        assert quotas.has_active_edit_session("pm1")

    def test_end_without_session_is_noop(self):
        _, quotas = _quotas()
        quotas.end_edit_session("pm1")

    def test_session_times_out_after_30_minutes(self):
        core, quotas = _quotas()
        quotas.start_edit_session("pm1", "p1")

        core.clock.advance(minutes=30)

        assert not quotas.has_active_edit_session("pm1")
        quotas.start_edit_session("pm1", "p2")
        assert quotas.get_quota_status("pm1").active_edit_product_id == "p2"
