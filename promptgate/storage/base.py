from abc import ABC, abstractmethod

from promptgate.entitlements.models import (
    AccessCodeRecord,
    EntitlementSnapshot,
    PaymentRecord,
    SubscriptionRecord,
)


class EntitlementStore(ABC):
    """
    Persistent per-session store: access code, payment record, subscription record.
    Each record is addressable on its own; there is no transaction across them.
    Reads of a corrupt or unreachable store raise StorageError.
    """

    @abstractmethod
    def get_access_code(self) -> AccessCodeRecord | None:
        raise NotImplementedError

    @abstractmethod
    def set_access_code(self, record: AccessCodeRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    def clear_access_code(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def get_payment(self) -> PaymentRecord | None:
        raise NotImplementedError

    @abstractmethod
    def set_payment(self, record: PaymentRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    def clear_payment(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def get_subscription(self) -> SubscriptionRecord | None:
        raise NotImplementedError

    @abstractmethod
    def set_subscription(self, record: SubscriptionRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    def clear_subscription(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def get_deactivated_codes(self) -> frozenset[str]:
        raise NotImplementedError

    @abstractmethod
    def add_deactivated_code(self, code: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        """Remove every record in one step; no partial clear is observable."""
        raise NotImplementedError

    def snapshot(self) -> EntitlementSnapshot:
        """Read everything needed by decide_entitlement."""
        return EntitlementSnapshot(
            access_code=self.get_access_code(),
            payment=self.get_payment(),
            subscription=self.get_subscription(),
            deactivated_codes=self.get_deactivated_codes(),
        )
