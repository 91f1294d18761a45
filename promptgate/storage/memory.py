"""
Process-local entitlement store for app_env=local and tests.
Same contract as RedisEntitlementStore, without serialization.
"""
import threading

from promptgate.entitlements.models import (
    AccessCodeRecord,
    EntitlementSnapshot,
    PaymentRecord,
    SubscriptionRecord,
)
from promptgate.storage.base import EntitlementStore


class InMemoryEntitlementStore(EntitlementStore):
    def __init__(self, session_id: str = "local") -> None:
        self.session_id = session_id
        self._lock = threading.Lock()
        self._access_code: AccessCodeRecord | None = None
        self._payment: PaymentRecord | None = None
        self._subscription: SubscriptionRecord | None = None
        self._deactivated: set[str] = set()

    def get_access_code(self) -> AccessCodeRecord | None:
        with self._lock:
            return self._access_code

    def set_access_code(self, record: AccessCodeRecord) -> None:
        with self._lock:
            self._access_code = record

    def clear_access_code(self) -> None:
        with self._lock:
            self._access_code = None

    def get_payment(self) -> PaymentRecord | None:
        with self._lock:
            return self._payment

    def set_payment(self, record: PaymentRecord) -> None:
        with self._lock:
            self._payment = record

    def clear_payment(self) -> None:
        with self._lock:
            self._payment = None

    def get_subscription(self) -> SubscriptionRecord | None:
        with self._lock:
            return self._subscription

    def set_subscription(self, record: SubscriptionRecord) -> None:
        with self._lock:
            self._subscription = record

    def clear_subscription(self) -> None:
        with self._lock:
            self._subscription = None

    def get_deactivated_codes(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._deactivated)

    def add_deactivated_code(self, code: str) -> None:
        with self._lock:
            self._deactivated.add(code)

    def clear(self) -> None:
        with self._lock:
            self._access_code = None
            self._payment = None
            self._subscription = None
            self._deactivated.clear()

    def snapshot(self) -> EntitlementSnapshot:
        with self._lock:
            return EntitlementSnapshot(
                access_code=self._access_code,
                payment=self._payment,
                subscription=self._subscription,
                deactivated_codes=frozenset(self._deactivated),
            )
