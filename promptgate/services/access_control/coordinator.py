"""
AccessControlCoordinator: машина состояний доступа одной сессии.

Unknown -> Checking -> {Granted, Denied}
Granted -> Denied только через revoke_access (или повторную проверку хранилища).
Denied -> Granted через validate_code или grant_access.
Состояние является кэшем хранилища; напрямую его никто не пишет.
Ни один публичный метод не бросает наружу: ошибка -> bool/None + уведомление.
"""
from __future__ import annotations

import logging
from enum import Enum

from pydantic import BaseModel

from promptgate.core.logging import mask_code
from promptgate.entitlements.codes import canonicalize
from promptgate.entitlements.errors import InvalidTransition, StorageError, SynthesisFailure
from promptgate.services.access_codes.service import AccessCodeService, RedemptionOutcome
from promptgate.services.notifications.service import NotificationBus, NotificationVariant
from promptgate.utils.metrics import (
    access_checks_total,
    access_grants_total,
    access_revocations_total,
    code_redemptions_total,
)

logger = logging.getLogger(__name__)


class AccessPhase(str, Enum):
    UNKNOWN = "unknown"
    CHECKING = "checking"
    GRANTED = "granted"
    DENIED = "denied"


_TRANSITIONS: dict[AccessPhase, frozenset[AccessPhase]] = {
    AccessPhase.UNKNOWN: frozenset({AccessPhase.CHECKING, AccessPhase.GRANTED, AccessPhase.DENIED}),
    AccessPhase.CHECKING: frozenset({AccessPhase.GRANTED, AccessPhase.DENIED}),
    AccessPhase.GRANTED: frozenset({AccessPhase.CHECKING, AccessPhase.GRANTED, AccessPhase.DENIED}),
    AccessPhase.DENIED: frozenset({AccessPhase.CHECKING, AccessPhase.GRANTED, AccessPhase.DENIED}),
}


class AccessState(BaseModel):
    phase: AccessPhase = AccessPhase.UNKNOWN
    current_code: str | None = None

    model_config = {"frozen": True}

    @property
    def has_access(self) -> bool:
        return self.phase == AccessPhase.GRANTED

    @property
    def is_loading(self) -> bool:
        return self.phase in (AccessPhase.UNKNOWN, AccessPhase.CHECKING)

    def as_dict(self) -> dict:
        return {
            "phase": self.phase.value,
            "has_access": self.has_access,
            "is_loading": self.is_loading,
            "current_code": self.current_code,
        }


def transition(state: AccessState, phase: AccessPhase, current_code: str | None = None) -> AccessState:
    """Raises InvalidTransition for a move the machine does not allow."""
    if phase not in _TRANSITIONS[state.phase]:
        raise InvalidTransition("access", state.phase.value, phase.value)
    return AccessState(phase=phase, current_code=current_code)


class AccessControlCoordinator:
    def __init__(self, codes: AccessCodeService, bus: NotificationBus, session_id: str = ""):
        self.codes = codes
        self.bus = bus
        self.session_id = session_id
        self._state = AccessState()

    @property
    def state(self) -> AccessState:
        return self._state

    @property
    def has_access(self) -> bool:
        return self._state.has_access

    def _move(self, phase: AccessPhase, current_code: str | None = None) -> None:
        old = self._state.phase
        self._state = transition(self._state, phase, current_code)
        if old != phase:
            logger.debug(
                "access_phase_changed",
                extra={"session_id": self.session_id, "old_state": old.value, "new_state": phase.value},
            )

    def check_access_status(self) -> AccessState:
        """Перечитать хранилище. Никогда не бросает: сбой -> Denied + запись в лог."""
        self._move(AccessPhase.CHECKING, self._state.current_code)
        try:
            valid = self.codes.has_valid_access()
            code = self.codes.get_user_access_code() if valid else None
        except StorageError as e:
            logger.warning("access_check_storage_error", extra={"session_id": self.session_id, "error": str(e)})
            access_checks_total.labels(outcome="error").inc()
            self._move(AccessPhase.DENIED)
            return self._state
        except Exception:
            logger.exception("access_check_failed", extra={"session_id": self.session_id})
            access_checks_total.labels(outcome="error").inc()
            self._move(AccessPhase.DENIED)
            return self._state

        if valid:
            access_checks_total.labels(outcome="granted").inc()
            self._move(AccessPhase.GRANTED, code)
        else:
            access_checks_total.labels(outcome="denied").inc()
            self._move(AccessPhase.DENIED)
        return self._state

    def validate_code(self, code: str | None) -> bool:
        """Погасить код. True закрывает диалог ввода; при False состояние не меняется."""
        try:
            outcome = self.codes.redeem(code)
        except Exception:
            logger.exception("access_code_validation_failed", extra={"session_id": self.session_id})
            outcome = RedemptionOutcome.UNAVAILABLE

        code_redemptions_total.labels(outcome=outcome.value).inc()

        if outcome == RedemptionOutcome.ACCEPTED:
            self._move(AccessPhase.GRANTED, canonicalize(code))
            self.bus.emit("Access Granted", "Welcome! You now have access to the platform.")
            return True

        if outcome == RedemptionOutcome.REJECTED:
            self.bus.emit(
                "Invalid Code",
                "The access code you entered is invalid or expired.",
                NotificationVariant.DESTRUCTIVE,
            )
        else:
            self.bus.emit(
                "Validation Error",
                "Failed to validate access code. Please try again.",
                NotificationVariant.DESTRUCTIVE,
            )
        return False

    def grant_access(self, payment_id: str, email: str | None = None) -> str | None:
        """Выпустить код по оплате. None, если хранилище не приняло запись; состояние тогда прежнее."""
        try:
            code = self.codes.store_access_code(payment_id, email)
        except SynthesisFailure as e:
            access_grants_total.labels(outcome="failed").inc()
            logger.warning(
                "access_grant_failed",
                extra={"session_id": self.session_id, "payment_id": payment_id, "error": str(e)},
            )
            self.bus.emit(
                "Access Error",
                "Your payment was received but access could not be activated. Please refresh the page.",
                NotificationVariant.DESTRUCTIVE,
            )
            return None
        except Exception:
            access_grants_total.labels(outcome="failed").inc()
            logger.exception("access_grant_failed", extra={"session_id": self.session_id, "payment_id": payment_id})
            return None

        access_grants_total.labels(outcome="granted").inc()
        self._move(AccessPhase.GRANTED, code)
        logger.info(
            "access_granted",
            extra={"session_id": self.session_id, "payment_id": payment_id, "code": mask_code(code)},
        )
        return code

    def revoke_access(self) -> None:
        """Logout. Идемпотентно; код остаётся годным для повторного ввода."""
        try:
            self.codes.clear_access()
        except Exception:
            logger.exception("access_revoke_failed", extra={"session_id": self.session_id})
            self.bus.emit(
                "Logout Failed",
                "We couldn't log you out. Please try again.",
                NotificationVariant.DESTRUCTIVE,
            )
            return
        access_revocations_total.inc()
        self._move(AccessPhase.DENIED)
        self.bus.emit("Access Revoked", "You have been logged out.")
