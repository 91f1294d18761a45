"""
Тесты RedisEntitlementStore на dict-фейке Redis-клиента: подпись, ошибки, атомарный clear.
"""
import unittest
from unittest.mock import MagicMock

import redis

from promptgate.entitlements.errors import StorageError
from promptgate.entitlements.models import AccessCodeRecord, PaymentRecord
from promptgate.storage.redis_store import RedisEntitlementStore


class FakeRedis:
    """Минимальный dict-фейк нужных команд."""

    def __init__(self):
        self.data = {}
        self.sets = {}
        self.delete_calls = []

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def setex(self, key, ttl, value):
        self.data[key] = value

    def delete(self, *keys):
        self.delete_calls.append(keys)
        for key in keys:
            self.data.pop(key, None)
            self.sets.pop(key, None)

    def smembers(self, key):
        return set(self.sets.get(key, set()))

    def sadd(self, key, value):
        self.sets.setdefault(key, set()).add(value)

    def pipeline(self, transaction=True):
        fake = self
        results = []
        pipe = MagicMock()
        pipe.get.side_effect = lambda key: results.append(fake.get(key))
        pipe.smembers.side_effect = lambda key: results.append(fake.smembers(key))
        pipe.execute.side_effect = lambda: list(results)
        return pipe


class TestRedisEntitlementStore(unittest.TestCase):
    def setUp(self):
        self.client = FakeRedis()
        self.store = RedisEntitlementStore("s1", client=self.client)

    def test_round_trip(self):
        record = AccessCodeRecord(code="AC-DEADBEEF-123456789", payment_id="pay_1")
        self.store.set_access_code(record)
        self.assertEqual(self.store.get_access_code(), record)
        self.assertIsNone(self.store.get_payment())

    def test_keys_are_namespaced_per_session(self):
        self.store.set_access_code(AccessCodeRecord(code="AC-DEADBEEF-123456789"))
        other = RedisEntitlementStore("s2", client=self.client)
        self.assertIsNone(other.get_access_code())
        self.assertTrue(any(":session:s1:access_code" in key for key in self.client.data))

    def test_tampered_record_is_storage_error(self):
        self.store.set_payment(PaymentRecord(payment_id="pay_1", amount="199", currency="INR"))
        key = next(k for k in self.client.data if k.endswith("payment_record"))
        self.client.data[key] = self.client.data[key][:-2] + "xx"
        with self.assertRaises(StorageError):
            self.store.get_payment()

    def test_record_signed_for_another_type(self):
        self.store.set_access_code(AccessCodeRecord(code="AC-DEADBEEF-123456789"))
        key = next(k for k in self.client.data if k.endswith("access_code"))
        self.client.data[key.replace("access_code", "payment_record")] = self.client.data[key]
        with self.assertRaises(StorageError):
            self.store.get_payment()

    def test_redis_error_is_storage_error(self):
        client = MagicMock()
        client.get.side_effect = redis.ConnectionError("refused")
        client.set.side_effect = redis.ConnectionError("refused")
        store = RedisEntitlementStore("s1", client=client)
        with self.assertRaises(StorageError):
            store.get_access_code()
        with self.assertRaises(StorageError):
            store.set_access_code(AccessCodeRecord(code="AC-DEADBEEF-123456789"))

    def test_clear_is_single_delete(self):
        self.store.set_access_code(AccessCodeRecord(code="AC-DEADBEEF-123456789"))
        self.store.set_payment(PaymentRecord(payment_id="pay_1", amount="199", currency="INR"))
        self.store.add_deactivated_code("AC-AAAAAAAA-BBBBBBBBB")

        self.store.clear()

        self.assertEqual(len(self.client.delete_calls), 1)
        self.assertEqual(len(self.client.delete_calls[0]), 4)
        snapshot = self.store.snapshot()
        self.assertIsNone(snapshot.access_code)
        self.assertIsNone(snapshot.payment)
        self.assertEqual(snapshot.deactivated_codes, frozenset())

    def test_snapshot(self):
        self.store.set_access_code(AccessCodeRecord(code="AC-DEADBEEF-123456789"))
        self.store.add_deactivated_code("AC-AAAAAAAA-BBBBBBBBB")
        snapshot = self.store.snapshot()
        self.assertEqual(snapshot.access_code.code, "AC-DEADBEEF-123456789")
        self.assertIsNone(snapshot.subscription)
        self.assertEqual(snapshot.deactivated_codes, frozenset({"AC-AAAAAAAA-BBBBBBBBB"}))
