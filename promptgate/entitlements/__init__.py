"""
Модель доступа (внутренняя библиотека).
Decision (decide_entitlement) отделён от хранилища; контракт через EntitlementSnapshot.
"""
from promptgate.entitlements.codes import (
    canonicalize,
    is_acceptable,
    is_well_formed,
    require_acceptable,
    synthesize_access_code,
)
from promptgate.entitlements.derive import decide_entitlement
from promptgate.entitlements.errors import (
    EntitlementError,
    InvalidTransition,
    StorageError,
    SynthesisFailure,
    ValidationFailure,
    VerificationFailure,
)
from promptgate.entitlements.models import (
    AccessCodeRecord,
    EntitlementDecision,
    EntitlementSnapshot,
    PaymentRecord,
    PaymentStatus,
    SubscriptionRecord,
    SubscriptionStatus,
)

__all__ = [
    "AccessCodeRecord",
    "EntitlementDecision",
    "EntitlementSnapshot",
    "PaymentRecord",
    "PaymentStatus",
    "SubscriptionRecord",
    "SubscriptionStatus",
    "EntitlementError",
    "InvalidTransition",
    "StorageError",
    "SynthesisFailure",
    "ValidationFailure",
    "VerificationFailure",
    "canonicalize",
    "is_acceptable",
    "is_well_formed",
    "require_acceptable",
    "synthesize_access_code",
    "decide_entitlement",
]
