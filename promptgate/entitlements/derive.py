"""
Decision только: decide_entitlement(snapshot) -> EntitlementDecision.
Чистая функция, без I/O. Пересчитывается из хранилища при каждой проверке,
поэтому частично записанное состояние (оплата есть, кода ещё нет) само
выправляется, как только синтез кода дойдёт до конца.
"""
from __future__ import annotations

from datetime import datetime

from promptgate.entitlements.codes import canonicalize, is_acceptable
from promptgate.entitlements.models import EntitlementDecision, EntitlementSnapshot


def decide_entitlement(snapshot: EntitlementSnapshot, now: datetime | None = None) -> EntitlementDecision:
    """
    - code_access: текущий код есть, канонический и проходит предикат приёма
    - has_paid: есть PaymentRecord
    - is_pro: подписка есть и активна (status=active, renewal_at в будущем)
    """
    code_access = False
    if snapshot.access_code is not None:
        code = snapshot.access_code.code
        # Хранимый код должен быть уже канонизирован; иное значит порча хранилища
        code_access = code == canonicalize(code) and is_acceptable(code, snapshot.deactivated_codes)

    is_pro = snapshot.subscription is not None and snapshot.subscription.is_active(now)

    return EntitlementDecision(
        code_access=code_access,
        has_paid=snapshot.payment is not None,
        is_pro=is_pro,
    )
