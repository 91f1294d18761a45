"""Tests for EntitlementStoreFactory: backend choice, per-session memory stores, eviction."""
from unittest.mock import patch

import pytest

from promptgate.core.config import settings
from promptgate.storage.factory import EntitlementStoreFactory
from promptgate.storage.memory import InMemoryEntitlementStore


def test_memory_store_is_reused_per_session():
    first = EntitlementStoreFactory.create("s1", backend="memory")
    assert isinstance(first, InMemoryEntitlementStore)
    assert EntitlementStoreFactory.create("s1", backend="memory") is first
    assert EntitlementStoreFactory.create("s2", backend="memory") is not first


def test_unknown_backend():
    with pytest.raises(ValueError):
        EntitlementStoreFactory.create("s1", backend="sqlite")


def test_least_recently_used_session_is_evicted():
    with patch.object(settings, "memory_max_sessions", 2):
        s1 = EntitlementStoreFactory.create("s1", backend="memory")
        EntitlementStoreFactory.create("s2", backend="memory")
        # s1 снова используется, вытесняется s2
        assert EntitlementStoreFactory.create("s1", backend="memory") is s1
        EntitlementStoreFactory.create("s3", backend="memory")

        assert EntitlementStoreFactory.create("s1", backend="memory") is s1
        assert set(EntitlementStoreFactory._memory_stores) == {"s1", "s3"}
