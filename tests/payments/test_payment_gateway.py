"""Tests for PaymentService: verification outcomes, idempotent records, cached refresh."""
import asyncio
from datetime import timedelta
from unittest.mock import MagicMock

from promptgate.entitlements.errors import StorageError, VerificationFailure
from promptgate.entitlements.models import PaymentRecord, PaymentStatus, SubscriptionStatus, utcnow
from promptgate.services.payments.authority import PaymentAuthorityClient, VerificationResult
from promptgate.services.payments.service import PaymentService
from promptgate.storage.base import EntitlementStore
from promptgate.storage.memory import InMemoryEntitlementStore


def _authority(result=None, error=None):
    authority = MagicMock(spec=PaymentAuthorityClient)
    if error is not None:
        authority.verify.side_effect = error
    else:
        authority.verify.return_value = result
    return authority


def _run(coro):
    return asyncio.run(coro)


class TestOneTimePayment:
    def test_success_records_payment(self):
        store = InMemoryEntitlementStore()
        authority = _authority(VerificationResult(status="completed", payment_id="pay_1", email="a@example.com"))
        gateway = PaymentService(store, authority, "s1")

        assert _run(gateway.verify_payment(True, False)) is True

        record = store.get_payment()
        assert record.payment_id == "pay_1"
        assert record.email == "a@example.com"
        assert record.amount == "199"
        assert record.currency == "INR"
        assert record.status == PaymentStatus.COMPLETED
        request = authority.verify.call_args.args[0]
        assert request.session_id == "s1"
        assert request.is_subscription is False

    def test_replay_does_not_duplicate(self):
        store = MagicMock(wraps=InMemoryEntitlementStore())
        authority = _authority(VerificationResult(status="verified", payment_id="pay_1"))
        gateway = PaymentService(store, authority, "s1")

        assert _run(gateway.verify_payment(True)) is True
        assert _run(gateway.verify_payment(True)) is True
        assert store.set_payment.call_count == 1

    def test_failed_status_leaves_store_untouched(self):
        store = MagicMock(wraps=InMemoryEntitlementStore())
        gateway = PaymentService(store, _authority(VerificationResult(status="failed")), "s1")
        assert _run(gateway.verify_payment(True)) is False
        store.set_payment.assert_not_called()

    def test_pending_is_not_success(self):
        store = InMemoryEntitlementStore()
        gateway = PaymentService(store, _authority(VerificationResult(status="pending")), "s1")
        assert _run(gateway.verify_payment(True)) is False
        assert store.get_payment() is None

    def test_unreachable_authority_returns_false(self):
        store = InMemoryEntitlementStore()
        existing = PaymentRecord(payment_id="pay_old", amount="199", currency="INR")
        store.set_payment(existing)
        gateway = PaymentService(store, _authority(error=VerificationFailure("timeout")), "s1")

        assert _run(gateway.verify_payment(True)) is False
        assert store.get_payment() == existing

    def test_write_failure_returns_false(self):
        store = MagicMock(spec=EntitlementStore)
        store.get_payment.return_value = None
        store.set_payment.side_effect = StorageError("write failed")
        gateway = PaymentService(store, _authority(VerificationResult(status="completed", payment_id="pay_1")), "s1")
        assert _run(gateway.verify_payment(True)) is False


class TestSubscription:
    def test_success_records_active_subscription(self):
        store = InMemoryEntitlementStore()
        authority = _authority(VerificationResult(status="completed", subscription_id="sub_1"))
        gateway = PaymentService(store, authority, "s1")

        assert _run(gateway.verify_payment(True, True)) is True

        record = store.get_subscription()
        assert record.subscription_id == "sub_1"
        assert record.status == SubscriptionStatus.ACTIVE
        assert record.renewal_at > utcnow() + timedelta(days=29)
        assert store.get_payment() is None

    def test_replay_keeps_started_at(self):
        store = MagicMock(wraps=InMemoryEntitlementStore())
        authority = _authority(VerificationResult(status="completed", subscription_id="sub_1"))
        gateway = PaymentService(store, authority, "s1")
        _run(gateway.verify_payment(True, True))
        _run(gateway.verify_payment(True, True))
        assert store.set_subscription.call_count == 1

    def test_renewal_without_offset_is_read_as_utc(self):
        store = InMemoryEntitlementStore()
        result = VerificationResult.model_validate(
            {"status": "completed", "subscription_id": "sub_1", "renewal_at": "2099-01-01T00:00:00"}
        )
        gateway = PaymentService(store, _authority(result), "s1")

        assert _run(gateway.verify_payment(True, True)) is True

        record = store.get_subscription()
        assert record.renewal_at.tzinfo is not None
        assert record.is_active()
        assert _run(gateway.verify_payment(False, True)) is True


class TestRoutineRefresh:
    def test_does_not_contact_authority(self):
        store = InMemoryEntitlementStore()
        authority = _authority(VerificationResult(status="completed", payment_id="pay_1"))
        gateway = PaymentService(store, authority, "s1")

        assert _run(gateway.verify_payment(False)) is False
        assert _run(gateway.verify_payment(False, True)) is False
        authority.verify.assert_not_called()

    def test_returns_cached_status(self):
        store = InMemoryEntitlementStore()
        store.set_payment(PaymentRecord(payment_id="pay_1", amount="199", currency="INR"))
        gateway = PaymentService(store, _authority(), "s1")
        assert _run(gateway.verify_payment(False)) is True
        assert _run(gateway.verify_payment(False, True)) is False

    def test_storage_error_is_false(self):
        store = MagicMock(spec=EntitlementStore)
        store.snapshot.side_effect = StorageError("down")
        gateway = PaymentService(store, _authority(), "s1")
        assert _run(gateway.verify_payment(False)) is False
