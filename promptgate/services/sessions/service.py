"""
EntitlementSession: сборка одной сессии (вкладки браузера): хранилище,
AccessCodeService, PaymentService, оба координатора и канал уведомлений.
"""
import logging

from promptgate.entitlements.errors import StorageError
from promptgate.services.access_codes.service import AccessCodeService
from promptgate.services.access_control.coordinator import AccessControlCoordinator
from promptgate.services.notifications.service import NotificationBus, log_notification
from promptgate.services.payment_status.coordinator import PaymentState, PaymentStatusCoordinator
from promptgate.services.payments.authority import PaymentAuthorityClient
from promptgate.services.payments.service import PaymentService
from promptgate.storage.base import EntitlementStore
from promptgate.storage.factory import EntitlementStoreFactory

logger = logging.getLogger(__name__)


class EntitlementSession:
    def __init__(
        self,
        session_id: str,
        store: EntitlementStore | None = None,
        authority: PaymentAuthorityClient | None = None,
        bus: NotificationBus | None = None,
    ):
        self.session_id = session_id
        self.store = store if store is not None else EntitlementStoreFactory.create(session_id)
        if bus is None:
            # Общий bus подписывает логгер сам, один раз
            bus = NotificationBus()
            bus.subscribe(log_notification)
        self.bus = bus
        self.codes = AccessCodeService(self.store)
        self.gateway = PaymentService(self.store, authority or PaymentAuthorityClient(), session_id)
        self.access = AccessControlCoordinator(self.codes, self.bus, session_id)
        self.payments = PaymentStatusCoordinator(self.store, self.gateway, self.bus, session_id)

    @property
    def has_access(self) -> bool:
        return self.access.has_access

    def start(self) -> "EntitlementSession":
        """Начальное состояние обоих координаторов берётся из хранилища."""
        self.access.check_access_status()
        self.payments.load_payment_status()
        return self

    async def complete_checkout(self, is_subscription: bool = False) -> str | None:
        """
        Пользователь вернулся из checkout: сверка с провайдером, затем выпуск кода
        по payment_id/subscription_id. Повторный вызов выдаёт тот же код.
        """
        verified = await self.payments.verify_payment_status(initiated=True, is_subscription=is_subscription)
        if not verified:
            return None
        try:
            if is_subscription:
                record = self.store.get_subscription()
                ref = record.subscription_id if record else None
            else:
                record = self.store.get_payment()
                ref = record.payment_id if record else None
        except StorageError as e:
            # Оплата записана, код выпустим при следующей сверке
            logger.warning("checkout_record_read_failed", extra={"session_id": self.session_id, "error": str(e)})
            return None
        if not ref:
            logger.warning("checkout_record_missing", extra={"session_id": self.session_id})
            return None
        return self.access.grant_access(ref, record.email)

    async def refresh(self) -> PaymentState:
        """Плановое обновление (фокус вкладки): без обращения к провайдеру."""
        await self.payments.verify_payment_status(initiated=False, is_subscription=False)
        await self.payments.verify_payment_status(initiated=False, is_subscription=True)
        self.access.check_access_status()
        return self.payments.state

    def reset_all(self) -> None:
        """Стереть всё, включая деактивированные коды (поддержка/тесты)."""
        try:
            self.codes.clear_all_data()
        except StorageError as e:
            logger.warning("session_reset_failed", extra={"session_id": self.session_id, "error": str(e)})
        self.start()
