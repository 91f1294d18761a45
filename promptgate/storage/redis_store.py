"""
Redis-backed entitlement store with signed serialization.
Uses itsdangerous so a tampered record reads as StorageError, never as access.
"""
import logging
from typing import Any, TypeVar

import redis
from itsdangerous import BadSignature, URLSafeSerializer
from pydantic import BaseModel, ValidationError

from promptgate.core.config import settings
from promptgate.entitlements.errors import StorageError
from promptgate.entitlements.models import (
    AccessCodeRecord,
    EntitlementSnapshot,
    PaymentRecord,
    SubscriptionRecord,
)
from promptgate.storage.base import EntitlementStore

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

ACCESS_CODE_KEY = "access_code"
PAYMENT_KEY = "payment_record"
SUBSCRIPTION_KEY = "subscription_record"
DEACTIVATED_KEY = "deactivated_codes"


class RecordSigner:
    """Sign/verify record payloads; shared by every Redis-backed store."""

    def __init__(self, secret: str, salt: str) -> None:
        self.serializer = URLSafeSerializer(secret, salt=salt)

    def dumps(self, record: BaseModel) -> str:
        return self.serializer.dumps(record.model_dump(mode="json"))

    def loads(self, raw: str, model: type[RecordT], key: str) -> RecordT:
        try:
            data = self.serializer.loads(raw)
            return model.model_validate(data)
        except BadSignature as e:
            raise StorageError("record signature mismatch", {"key": key}) from e
        except ValidationError as e:
            raise StorageError("record schema mismatch", {"key": key, "error": str(e)}) from e


def get_redis_client() -> redis.Redis:
    return redis.Redis.from_url(settings.redis_url, decode_responses=True)


class RedisEntitlementStore(EntitlementStore):
    """One instance per session id; keys are {prefix}:session:{session_id}:{name}."""

    def __init__(self, session_id: str, client: redis.Redis | None = None) -> None:
        self.session_id = session_id
        self.client = client if client is not None else get_redis_client()
        self.signer = RecordSigner(settings.access_code_secret, salt="entitlement")
        self.ttl = settings.entitlement_ttl_seconds

    def _key(self, name: str) -> str:
        return f"{settings.storage_key_prefix}:session:{self.session_id}:{name}"

    def _decode(self, raw: Any, model: type[RecordT], name: str) -> RecordT | None:
        if not raw:
            return None
        return self.signer.loads(raw, model, self._key(name))

    def _get(self, name: str, model: type[RecordT]) -> RecordT | None:
        try:
            raw = self.client.get(self._key(name))
        except redis.RedisError as e:
            raise StorageError("redis read failed", {"key": self._key(name), "error": str(e)}) from e
        return self._decode(raw, model, name)

    def _set(self, name: str, record: BaseModel) -> None:
        signed = self.signer.dumps(record)
        try:
            if self.ttl > 0:
                self.client.setex(self._key(name), self.ttl, signed)
            else:
                self.client.set(self._key(name), signed)
        except redis.RedisError as e:
            raise StorageError("redis write failed", {"key": self._key(name), "error": str(e)}) from e

    def _delete(self, *names: str) -> None:
        try:
            # DEL с несколькими ключами атомарен
            self.client.delete(*(self._key(n) for n in names))
        except redis.RedisError as e:
            raise StorageError("redis delete failed", {"keys": list(names), "error": str(e)}) from e

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def get_access_code(self) -> AccessCodeRecord | None:
        return self._get(ACCESS_CODE_KEY, AccessCodeRecord)

    def set_access_code(self, record: AccessCodeRecord) -> None:
        self._set(ACCESS_CODE_KEY, record)

    def clear_access_code(self) -> None:
        self._delete(ACCESS_CODE_KEY)

    def get_payment(self) -> PaymentRecord | None:
        return self._get(PAYMENT_KEY, PaymentRecord)

    def set_payment(self, record: PaymentRecord) -> None:
        self._set(PAYMENT_KEY, record)

    def clear_payment(self) -> None:
        self._delete(PAYMENT_KEY)

    def get_subscription(self) -> SubscriptionRecord | None:
        return self._get(SUBSCRIPTION_KEY, SubscriptionRecord)

    def set_subscription(self, record: SubscriptionRecord) -> None:
        self._set(SUBSCRIPTION_KEY, record)

    def clear_subscription(self) -> None:
        self._delete(SUBSCRIPTION_KEY)

    def get_deactivated_codes(self) -> frozenset[str]:
        try:
            return frozenset(self.client.smembers(self._key(DEACTIVATED_KEY)))
        except redis.RedisError as e:
            raise StorageError("redis read failed", {"key": self._key(DEACTIVATED_KEY), "error": str(e)}) from e

    def add_deactivated_code(self, code: str) -> None:
        try:
            self.client.sadd(self._key(DEACTIVATED_KEY), code)
        except redis.RedisError as e:
            raise StorageError("redis write failed", {"key": self._key(DEACTIVATED_KEY), "error": str(e)}) from e

    def clear(self) -> None:
        self._delete(ACCESS_CODE_KEY, PAYMENT_KEY, SUBSCRIPTION_KEY, DEACTIVATED_KEY)

    def snapshot(self) -> EntitlementSnapshot:
        """All four keys in one MULTI/EXEC: a consistent view of the session."""
        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.get(self._key(ACCESS_CODE_KEY))
            pipe.get(self._key(PAYMENT_KEY))
            pipe.get(self._key(SUBSCRIPTION_KEY))
            pipe.smembers(self._key(DEACTIVATED_KEY))
            raw_code, raw_payment, raw_subscription, deactivated = pipe.execute()
        except redis.RedisError as e:
            raise StorageError("redis snapshot failed", {"session_id": self.session_id, "error": str(e)}) from e
        return EntitlementSnapshot(
            access_code=self._decode(raw_code, AccessCodeRecord, ACCESS_CODE_KEY),
            payment=self._decode(raw_payment, PaymentRecord, PAYMENT_KEY),
            subscription=self._decode(raw_subscription, SubscriptionRecord, SUBSCRIPTION_KEY),
            deactivated_codes=frozenset(deactivated or ()),
        )
