"""
AccessCodeService: выдача, проверка и хранение кодов доступа одной сессии.

Ответственности:
- Погашение кода, введённого пользователем (канонизация + предикат приёма)
- Детерминированный синтез кода по payment_id после оплаты
- Локальный logout (clear_access) и отдельная деактивация кода
Коды самоудостоверяющиеся: проверка локальная, без сети.
"""
import logging
from enum import Enum

from promptgate.core.config import settings
from promptgate.core.logging import mask_code
from promptgate.entitlements.codes import canonicalize, is_well_formed, require_acceptable, synthesize_access_code
from promptgate.entitlements.derive import decide_entitlement
from promptgate.entitlements.errors import StorageError, SynthesisFailure, ValidationFailure
from promptgate.entitlements.models import AccessCodeRecord
from promptgate.storage.base import EntitlementStore

logger = logging.getLogger(__name__)


class RedemptionOutcome(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"  # пусто, неверный формат или код деактивирован
    UNAVAILABLE = "unavailable"  # хранилище недоступно


class AccessCodeService:
    def __init__(self, store: EntitlementStore, secret: str | None = None):
        self.store = store
        self._secret = secret or settings.access_code_secret

    # ------------------------------------------------------------------
    # Reads (StorageError пробрасывается: решает координатор)
    # ------------------------------------------------------------------

    def has_valid_access(self) -> bool:
        """Текущий код есть и проходит предикат. Всегда пересчитывается из хранилища."""
        return decide_entitlement(self.store.snapshot()).code_access

    def get_user_access_code(self) -> str | None:
        record = self.store.get_access_code()
        return record.code if record else None

    # ------------------------------------------------------------------
    # Redemption
    # ------------------------------------------------------------------

    def redeem(self, raw: str | None) -> RedemptionOutcome:
        """
        Погасить код пользователя. Повторное погашение текущего кода считается успехом
        без записи. При отказе хранилище не трогаем.
        """
        try:
            # Формат проверяем до любого обращения к хранилищу
            code = require_acceptable(raw)
            snapshot = self.store.snapshot()
            require_acceptable(code, snapshot.deactivated_codes)
            current = snapshot.access_code
            if current is not None and current.code == code:
                return RedemptionOutcome.ACCEPTED
            self.store.set_access_code(AccessCodeRecord(code=code))
        except ValidationFailure as e:
            logger.info(
                "access_code_rejected",
                extra={"code": mask_code(canonicalize(raw)), "outcome": e.detail.get("reason")},
            )
            return RedemptionOutcome.REJECTED
        except StorageError as e:
            logger.warning(
                "access_code_redeem_storage_error",
                extra={"code": mask_code(code), "error": str(e)},
            )
            return RedemptionOutcome.UNAVAILABLE

        logger.info("access_code_redeemed", extra={"code": mask_code(code)})
        return RedemptionOutcome.ACCEPTED

    def validate_access_code(self, raw: str | None) -> bool:
        return self.redeem(raw) == RedemptionOutcome.ACCEPTED

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------

    def store_access_code(self, payment_id: str, email: str | None = None) -> str:
        """
        Выпустить код для payment_id и сделать его текущим.
        Тот же payment_id -> тот же код; если он уже текущий, запись не повторяем.
        Raises SynthesisFailure, если хранилище не приняло запись.
        """
        if not payment_id or not payment_id.strip():
            raise SynthesisFailure("payment_id is required")
        code = synthesize_access_code(payment_id, self._secret)
        try:
            current = self.store.get_access_code()
            if current is not None and current.code == code:
                return code
            self.store.set_access_code(
                AccessCodeRecord(code=code, payment_id=payment_id.strip(), email=email)
            )
        except StorageError as e:
            raise SynthesisFailure(
                "failed to persist access code",
                {"payment_id": payment_id, "error": str(e)},
            ) from e
        logger.info("access_code_issued", extra={"payment_id": payment_id, "code": mask_code(code)})
        return code

    # ------------------------------------------------------------------
    # Revocation
    # ------------------------------------------------------------------

    def clear_access(self) -> None:
        """Logout: убирает только указатель на текущий код. Оплаты не трогаем."""
        self.store.clear_access_code()

    def deactivate_access_code(self, raw: str | None) -> bool:
        """Код перестаёт проходить предикат приёма в этом хранилище. False для неверного формата."""
        code = canonicalize(raw)
        if not is_well_formed(code):
            return False
        self.store.add_deactivated_code(code)
        logger.info("access_code_deactivated", extra={"code": mask_code(code)})
        return True

    def clear_all_data(self) -> None:
        """Код, оплата, подписка и список деактивированных одним шагом (поддержка/тесты)."""
        self.store.clear()
