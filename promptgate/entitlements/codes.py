"""
Формат кода доступа: AC-<PAYMENT_REF>-<RANDOM>.
Всё здесь чистое и локальное: никакого I/O, сети и хранилища.
"""
from __future__ import annotations

import hashlib
import hmac
import re
from typing import AbstractSet

from promptgate.entitlements.errors import ValidationFailure

CODE_PREFIX = "AC"
PAYMENT_REF_LENGTH = 10
RANDOM_PART_LENGTH = 12

ACCESS_CODE_PATTERN = r"^AC-[A-Z0-9]{8,}-[A-Z0-9]{9,}$"
_ACCESS_CODE_RE = re.compile(ACCESS_CODE_PATTERN)


def canonicalize(raw: str | None) -> str:
    """Trim + uppercase. None -> ''."""
    return (raw or "").strip().upper()


def is_well_formed(code: str) -> bool:
    """Формат проверяется по уже канонизированной строке."""
    return bool(_ACCESS_CODE_RE.match(code))


def is_acceptable(code: str, deactivated: AbstractSet[str] = frozenset()) -> bool:
    """Предикат приёма: формат корректен и код не деактивирован."""
    return is_well_formed(code) and code not in deactivated


def require_acceptable(raw: str | None, deactivated: AbstractSet[str] = frozenset()) -> str:
    """
    Канонизировать и проверить предикат приёма.
    Raises ValidationFailure с detail["reason"]: "malformed" или "deactivated".
    """
    code = canonicalize(raw)
    if not is_well_formed(code):
        raise ValidationFailure("access code is malformed", {"reason": "malformed"})
    if code in deactivated:
        raise ValidationFailure("access code is deactivated", {"reason": "deactivated"})
    return code


def synthesize_access_code(payment_id: str, secret: str) -> str:
    """
    Детерминированный код для payment_id: один и тот же payment_id
    всегда даёт один и тот же код (повторная верификация не плодит коды).
    RANDOM-часть это HMAC по секрету, так что по payment_id код не угадать.
    """
    if not payment_id or not payment_id.strip():
        raise ValueError("payment_id is required")
    pid = payment_id.strip()
    ref = hashlib.sha256(pid.encode("utf-8")).hexdigest()[:PAYMENT_REF_LENGTH]
    tail = hmac.new(secret.encode("utf-8"), pid.encode("utf-8"), hashlib.sha256).hexdigest()
    return f"{CODE_PREFIX}-{ref}-{tail[:RANDOM_PART_LENGTH]}".upper()
