"""Tests for AccessCodeService: redemption, synthesis, revocation."""
from unittest.mock import MagicMock

import pytest

from promptgate.entitlements.errors import StorageError, SynthesisFailure
from promptgate.entitlements.models import PaymentRecord
from promptgate.services.access_codes.service import AccessCodeService, RedemptionOutcome
from promptgate.storage.base import EntitlementStore
from promptgate.storage.memory import InMemoryEntitlementStore

SECRET = "test-secret-0123456789"


def _service(store=None):
    return AccessCodeService(store or InMemoryEntitlementStore(), secret=SECRET)


class TestRedemption:
    def test_lowercase_code_is_canonicalized(self):
        svc = _service()
        assert svc.validate_access_code("ac-deadbeef-123456789") is True
        assert svc.get_user_access_code() == "AC-DEADBEEF-123456789"
        assert svc.has_valid_access() is True

    def test_redeeming_twice_writes_once(self):
        store = MagicMock(wraps=InMemoryEntitlementStore())
        svc = _service(store)

        assert svc.validate_access_code("AC-DEADBEEF-123456789") is True
        assert svc.validate_access_code(" ac-deadbeef-123456789 ") is True
        assert store.set_access_code.call_count == 1

    @pytest.mark.parametrize("raw", ["", "   ", None, "\t\n"])
    def test_blank_input_never_touches_storage(self, raw):
        store = MagicMock(spec=EntitlementStore)
        svc = _service(store)
        assert svc.validate_access_code(raw) is False
        assert store.method_calls == []

    @pytest.mark.parametrize("raw", ["AC-SHORT-123456789", "hello", "AC-DEADBEEF-1234"])
    def test_malformed_rejected_without_write(self, raw):
        store = MagicMock(spec=EntitlementStore)
        svc = _service(store)
        assert svc.redeem(raw) == RedemptionOutcome.REJECTED
        store.set_access_code.assert_not_called()

    def test_storage_error_reported_not_raised(self):
        store = MagicMock(spec=EntitlementStore)
        store.snapshot.side_effect = StorageError("redis down")
        svc = _service(store)
        assert svc.redeem("AC-DEADBEEF-123456789") == RedemptionOutcome.UNAVAILABLE
        assert svc.validate_access_code("AC-DEADBEEF-123456789") is False

    def test_failed_redemption_keeps_current_code(self):
        svc = _service()
        svc.validate_access_code("AC-DEADBEEF-123456789")
        assert svc.validate_access_code("AC-BAD") is False
        assert svc.get_user_access_code() == "AC-DEADBEEF-123456789"


class TestSynthesis:
    def test_same_payment_same_code_across_sessions(self):
        store = InMemoryEntitlementStore()
        first = _service(store).store_access_code("pay_123", "a@example.com")
        second = _service(store).store_access_code("pay_123", "a@example.com")
        assert first == second

    def test_replay_does_not_rewrite(self):
        store = MagicMock(wraps=InMemoryEntitlementStore())
        svc = _service(store)
        svc.store_access_code("pay_123")
        svc.store_access_code("pay_123")
        assert store.set_access_code.call_count == 1

    def test_grant_makes_code_current(self):
        svc = _service()
        code = svc.store_access_code("pay_123", "a@example.com")
        assert svc.has_valid_access() is True
        assert svc.get_user_access_code() == code
        record = svc.store.get_access_code()
        assert record.payment_id == "pay_123"
        assert record.email == "a@example.com"

    def test_write_failure_is_synthesis_failure(self):
        store = MagicMock(spec=EntitlementStore)
        store.get_access_code.return_value = None
        store.set_access_code.side_effect = StorageError("write failed")
        with pytest.raises(SynthesisFailure):
            _service(store).store_access_code("pay_123")

    def test_blank_payment_id(self):
        with pytest.raises(SynthesisFailure):
            _service().store_access_code("")


class TestRevocation:
    def test_clear_access_keeps_payment(self):
        store = InMemoryEntitlementStore()
        store.set_payment(PaymentRecord(payment_id="pay_1", amount="199", currency="INR"))
        svc = _service(store)
        svc.store_access_code("pay_1")

        svc.clear_access()

        assert svc.has_valid_access() is False
        assert svc.get_user_access_code() is None
        assert store.get_payment() is not None

    def test_revoked_code_can_be_redeemed_again(self):
        svc = _service()
        code = svc.store_access_code("pay_999")
        svc.clear_access()
        assert svc.validate_access_code(code) is True

    def test_deactivated_code_rejected(self):
        svc = _service()
        code = svc.store_access_code("pay_1")
        assert svc.deactivate_access_code(code.lower()) is True
        assert svc.has_valid_access() is False
        svc.clear_access()
        assert svc.redeem(code) == RedemptionOutcome.REJECTED

    def test_deactivate_malformed(self):
        assert _service().deactivate_access_code("nope") is False

    def test_clear_all_data(self):
        store = InMemoryEntitlementStore()
        store.set_payment(PaymentRecord(payment_id="pay_1", amount="199", currency="INR"))
        svc = _service(store)
        svc.store_access_code("pay_1")
        svc.deactivate_access_code("AC-DEADBEEF-123456789")

        svc.clear_all_data()

        snapshot = store.snapshot()
        assert snapshot.access_code is None
        assert snapshot.payment is None
        assert snapshot.deactivated_codes == frozenset()
