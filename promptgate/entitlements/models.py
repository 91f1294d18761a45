"""
DTO доступа: записи хранилища (AccessCodeRecord, PaymentRecord, SubscriptionRecord),
снимок хранилища (EntitlementSnapshot, вход decide_entitlement) и EntitlementDecision.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Время без смещения считаем UTC: сравнения идут только с aware-временем."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class PaymentStatus(str, Enum):
    COMPLETED = "completed"
    VERIFIED = "verified"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


# ----- Записи хранилища -----


class AccessCodeRecord(BaseModel):
    """Текущий код сессии. payment_id есть только у кодов, выпущенных по оплате."""

    code: str
    payment_id: str | None = None
    email: str | None = None
    generated_at: datetime = Field(default_factory=utcnow)

    model_config = {"frozen": True}

    @field_validator("generated_at")
    @classmethod
    def aware_generated_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class PaymentRecord(BaseModel):
    """Разовая покупка. Координаторам только для чтения."""

    payment_id: str
    email: str | None = None
    amount: str
    currency: str
    status: PaymentStatus = PaymentStatus.COMPLETED
    plan: str = "one_time"
    created_at: datetime = Field(default_factory=utcnow)

    model_config = {"frozen": True}

    @field_validator("created_at")
    @classmethod
    def aware_created_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class SubscriptionRecord(BaseModel):
    """Подписка Pro. Существует независимо от PaymentRecord."""

    subscription_id: str
    email: str | None = None
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    amount: str
    currency: str
    plan: str = "pro"
    started_at: datetime = Field(default_factory=utcnow)
    renewal_at: datetime | None = None

    model_config = {"frozen": True}

    @field_validator("started_at", "renewal_at")
    @classmethod
    def aware_dates(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)

    def is_active(self, now: datetime | None = None) -> bool:
        if self.status != SubscriptionStatus.ACTIVE:
            return False
        if self.renewal_at is None:
            return True
        return self.renewal_at > ensure_utc(now or utcnow())


# ----- Снимок хранилища (единый контракт для decide_entitlement) -----


class EntitlementSnapshot(BaseModel):
    """Содержимое хранилища одной сессии на момент чтения."""

    access_code: AccessCodeRecord | None = None
    payment: PaymentRecord | None = None
    subscription: SubscriptionRecord | None = None
    deactivated_codes: frozenset[str] = frozenset()

    model_config = {"frozen": True}


class EntitlementDecision(BaseModel):
    """Результат decide_entitlement. Три источника независимы друг от друга."""

    code_access: bool = Field(..., description="Текущий код есть и проходит предикат приёма")
    has_paid: bool = Field(..., description="Есть PaymentRecord")
    is_pro: bool = Field(..., description="Есть активная SubscriptionRecord")

    model_config = {"frozen": True}
