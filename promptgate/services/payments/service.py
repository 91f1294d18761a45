"""
PaymentService: сверка только что завершённого checkout с провайдером.

- payment_initiated=True: пользователь вернулся из checkout; идём к провайдеру,
  результат всегда терминальный (pending трактуем как неуспех)
- payment_initiated=False: плановое обновление; отвечаем из хранилища без сети
Успех сохраняет PaymentRecord или SubscriptionRecord. Неуспех, таймаут или
недоступность провайдера -> False, хранилище не меняется.
Повторные вызовы безопасны: запись с тем же идентификатором не переписывается.
"""
import asyncio
import logging
import time
from datetime import timedelta

from promptgate.core.config import settings
from promptgate.entitlements.derive import decide_entitlement
from promptgate.entitlements.errors import StorageError, VerificationFailure
from promptgate.entitlements.models import (
    PaymentRecord,
    PaymentStatus,
    SubscriptionRecord,
    SubscriptionStatus,
    utcnow,
)
from promptgate.services.payments.authority import (
    PaymentAuthorityClient,
    VerificationRequest,
    VerificationResult,
)
from promptgate.storage.base import EntitlementStore
from promptgate.utils.metrics import payment_verification_duration_seconds, payment_verifications_total

logger = logging.getLogger(__name__)


def _kind(is_subscription: bool) -> str:
    return "subscription" if is_subscription else "payment"


class PaymentService:
    def __init__(self, store: EntitlementStore, authority: PaymentAuthorityClient, session_id: str):
        self.store = store
        self.authority = authority
        self.session_id = session_id

    async def verify_payment(self, payment_initiated: bool, is_subscription: bool = False) -> bool:
        kind = _kind(is_subscription)
        if not payment_initiated:
            return self._cached_status(is_subscription)

        request = VerificationRequest(
            session_id=self.session_id,
            payment_initiated=True,
            is_subscription=is_subscription,
        )
        start = time.monotonic()
        try:
            result = await asyncio.to_thread(self.authority.verify, request)
        except VerificationFailure as e:
            payment_verifications_total.labels(kind=kind, outcome="failure").inc()
            logger.warning(
                "payment_verification_failed",
                extra={"session_id": self.session_id, "kind": kind, "error": str(e)},
            )
            return False
        finally:
            payment_verification_duration_seconds.labels(kind=kind).observe(time.monotonic() - start)

        if not result.succeeded:
            payment_verifications_total.labels(kind=kind, outcome="failure").inc()
            logger.info(
                "payment_not_confirmed",
                extra={"session_id": self.session_id, "kind": kind, "outcome": result.status},
            )
            return False

        try:
            if is_subscription:
                self._record_subscription(result)
            else:
                self._record_payment(result)
        except StorageError as e:
            payment_verifications_total.labels(kind=kind, outcome="failure").inc()
            logger.warning(
                "payment_record_write_failed",
                extra={"session_id": self.session_id, "kind": kind, "error": str(e)},
            )
            return False

        payment_verifications_total.labels(kind=kind, outcome="success").inc()
        return True

    def _cached_status(self, is_subscription: bool) -> bool:
        kind = _kind(is_subscription)
        try:
            decision = decide_entitlement(self.store.snapshot())
        except StorageError as e:
            logger.warning(
                "payment_status_read_failed",
                extra={"session_id": self.session_id, "kind": kind, "error": str(e)},
            )
            return False
        payment_verifications_total.labels(kind=kind, outcome="cached").inc()
        return decision.is_pro if is_subscription else decision.has_paid

    # ------------------------------------------------------------------
    # Idempotent writes
    # ------------------------------------------------------------------

    def _record_payment(self, result: VerificationResult) -> None:
        existing = self.store.get_payment()
        if existing is not None and existing.payment_id == result.payment_id:
            return
        self.store.set_payment(
            PaymentRecord(
                payment_id=result.payment_id,
                email=result.email,
                amount=result.amount or settings.payment_amount,
                currency=result.currency or settings.payment_currency,
                status=PaymentStatus(result.status),
            )
        )
        logger.info("payment_recorded", extra={"session_id": self.session_id, "payment_id": result.payment_id})

    def _record_subscription(self, result: VerificationResult) -> None:
        existing = self.store.get_subscription()
        now = utcnow()
        renewal_at = result.renewal_at or now + timedelta(days=settings.subscription_period_days)
        if existing is not None and existing.subscription_id == result.subscription_id:
            if existing.is_active(now) and (result.renewal_at is None or existing.renewal_at == result.renewal_at):
                return
            started_at = existing.started_at
        else:
            started_at = now
        self.store.set_subscription(
            SubscriptionRecord(
                subscription_id=result.subscription_id,
                email=result.email,
                status=SubscriptionStatus.ACTIVE,
                amount=result.amount or settings.subscription_amount,
                currency=result.currency or settings.payment_currency,
                started_at=started_at,
                renewal_at=renewal_at,
            )
        )
        logger.info(
            "subscription_recorded",
            extra={"session_id": self.session_id, "subscription_id": result.subscription_id},
        )
