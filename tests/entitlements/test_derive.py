"""
Unit-тесты decide_entitlement: чистая функция от снимка хранилища.
"""
from datetime import timedelta

from promptgate.entitlements.derive import decide_entitlement
from promptgate.entitlements.models import (
    AccessCodeRecord,
    EntitlementSnapshot,
    PaymentRecord,
    SubscriptionRecord,
    SubscriptionStatus,
    utcnow,
)


def _subscription(**kwargs) -> SubscriptionRecord:
    return SubscriptionRecord(
        subscription_id=kwargs.get("subscription_id", "sub_1"),
        status=kwargs.get("status", SubscriptionStatus.ACTIVE),
        amount="499",
        currency="INR",
        renewal_at=kwargs.get("renewal_at", utcnow() + timedelta(days=10)),
    )


def test_empty_snapshot_denies_everything():
    decision = decide_entitlement(EntitlementSnapshot())
    assert not decision.code_access
    assert not decision.has_paid
    assert not decision.is_pro


def test_valid_code_grants_code_access():
    snapshot = EntitlementSnapshot(access_code=AccessCodeRecord(code="AC-DEADBEEF-123456789"))
    assert decide_entitlement(snapshot).code_access


def test_non_canonical_stored_code_is_not_trusted():
    snapshot = EntitlementSnapshot(access_code=AccessCodeRecord(code="ac-deadbeef-123456789"))
    assert not decide_entitlement(snapshot).code_access


def test_deactivated_code_denied():
    code = "AC-DEADBEEF-123456789"
    snapshot = EntitlementSnapshot(
        access_code=AccessCodeRecord(code=code),
        deactivated_codes=frozenset({code}),
    )
    assert not decide_entitlement(snapshot).code_access


def test_subscription_without_payment():
    decision = decide_entitlement(EntitlementSnapshot(subscription=_subscription()))
    assert decision.is_pro is True
    assert decision.has_paid is False


def test_payment_without_code_is_paid_not_code_access():
    """Оплата записана, код ещё не выпущен: has_paid есть, code_access нет."""
    payment = PaymentRecord(payment_id="pay_1", amount="199", currency="INR")
    decision = decide_entitlement(EntitlementSnapshot(payment=payment))
    assert decision.has_paid
    assert not decision.code_access


def test_cancelled_or_lapsed_subscription_not_pro():
    cancelled = _subscription(status=SubscriptionStatus.CANCELLED)
    lapsed = _subscription(renewal_at=utcnow() - timedelta(seconds=1))
    assert not decide_entitlement(EntitlementSnapshot(subscription=cancelled)).is_pro
    assert not decide_entitlement(EntitlementSnapshot(subscription=lapsed)).is_pro
