"""
PaymentStatusCoordinator: статус оплаты/подписки одной сессии.
Loading -> Loaded{has_paid, is_pro}. has_paid и is_pro независимы.
"""
from __future__ import annotations

import logging
from enum import Enum

from pydantic import BaseModel

from promptgate.entitlements.derive import decide_entitlement
from promptgate.entitlements.errors import InvalidTransition, StorageError
from promptgate.entitlements.models import PaymentRecord, SubscriptionRecord
from promptgate.services.notifications.service import NotificationBus, NotificationVariant
from promptgate.services.payments.service import PaymentService
from promptgate.storage.base import EntitlementStore

logger = logging.getLogger(__name__)


class PaymentPhase(str, Enum):
    LOADING = "loading"
    LOADED = "loaded"


_TRANSITIONS: dict[PaymentPhase, frozenset[PaymentPhase]] = {
    PaymentPhase.LOADING: frozenset({PaymentPhase.LOADING, PaymentPhase.LOADED}),
    PaymentPhase.LOADED: frozenset({PaymentPhase.LOADING}),
}


class PaymentState(BaseModel):
    phase: PaymentPhase = PaymentPhase.LOADING
    has_paid: bool = False
    is_pro: bool = False
    # Детали заполняются только при соответствующем флаге
    payment_details: PaymentRecord | None = None
    subscription_details: SubscriptionRecord | None = None

    model_config = {"frozen": True}

    @property
    def is_loading(self) -> bool:
        return self.phase == PaymentPhase.LOADING


class PaymentStatusCoordinator:
    def __init__(
        self,
        store: EntitlementStore,
        gateway: PaymentService,
        bus: NotificationBus,
        session_id: str = "",
    ):
        self.store = store
        self.gateway = gateway
        self.bus = bus
        self.session_id = session_id
        self._state = PaymentState()

    @property
    def state(self) -> PaymentState:
        return self._state

    def _move(self, new_state: PaymentState) -> None:
        if new_state.phase not in _TRANSITIONS[self._state.phase]:
            raise InvalidTransition("payment", self._state.phase.value, new_state.phase.value)
        self._state = new_state

    def _start_loading(self) -> None:
        if self._state.phase != PaymentPhase.LOADING:
            self._move(self._state.model_copy(update={"phase": PaymentPhase.LOADING}))

    def _load_unavailable(self) -> PaymentState:
        self.bus.emit(
            "Payment Status Unavailable",
            "We couldn't load your payment status. Please refresh the page.",
            NotificationVariant.DESTRUCTIVE,
        )
        self._move(PaymentState(phase=PaymentPhase.LOADED))
        return self._state

    def load_payment_status(self) -> PaymentState:
        """Перечитать обе записи из хранилища."""
        self._start_loading()
        try:
            snapshot = self.store.snapshot()
            decision = decide_entitlement(snapshot)
        except StorageError as e:
            logger.warning("payment_status_read_failed", extra={"session_id": self.session_id, "error": str(e)})
            return self._load_unavailable()
        except Exception:
            logger.exception("payment_status_load_crashed", extra={"session_id": self.session_id})
            return self._load_unavailable()

        self._move(
            PaymentState(
                phase=PaymentPhase.LOADED,
                has_paid=decision.has_paid,
                is_pro=decision.is_pro,
                payment_details=snapshot.payment if decision.has_paid else None,
                subscription_details=snapshot.subscription if decision.is_pro else None,
            )
        )
        return self._state

    async def verify_payment_status(self, initiated: bool = False, is_subscription: bool = False) -> bool:
        """
        Сверка через PaymentService; затем статус перечитывается из хранилища
        при любом исходе, чтобы отображаемое состояние совпадало с хранилищем.
        """
        self._start_loading()
        try:
            success = await self.gateway.verify_payment(initiated, is_subscription)
        except Exception:
            logger.exception("payment_verification_crashed", extra={"session_id": self.session_id})
            success = False

        if initiated:
            if success and is_subscription:
                self.bus.emit("Subscription Activated", "Thank you! Your Pro subscription is now active.")
            elif success:
                self.bus.emit("Payment Verified", "Thank you! Your payment has been confirmed.")
            else:
                self.bus.emit(
                    "Verification Failed",
                    "We couldn't verify your payment. If you've already paid, please try again.",
                    NotificationVariant.DESTRUCTIVE,
                )

        self.load_payment_status()
        return success

    def reset_payment(self) -> PaymentState:
        """Стереть оплату и подписку (поддержка/тесты). Код доступа не трогаем."""
        try:
            self.store.clear_payment()
            self.store.clear_subscription()
        except StorageError as e:
            logger.warning("payment_reset_failed", extra={"session_id": self.session_id, "error": str(e)})
            self.bus.emit(
                "Reset Failed",
                "Payment data could not be cleared. Please try again.",
                NotificationVariant.DESTRUCTIVE,
            )
        else:
            logger.info("payment_reset", extra={"session_id": self.session_id})
        return self.load_payment_status()
