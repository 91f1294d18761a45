"""
Factory for entitlement stores based on configuration.
"""
import logging
import threading
from collections import OrderedDict

from promptgate.core.config import settings
from promptgate.storage.base import EntitlementStore
from promptgate.storage.memory import InMemoryEntitlementStore
from promptgate.storage.redis_store import RedisEntitlementStore

logger = logging.getLogger(__name__)


class EntitlementStoreFactory:
    """
    Creates the store for a session id.
    Memory stores are for local runs and tests only: session ids come from a
    client header, so at most settings.memory_max_sessions are kept and the
    least recently used one is evicted.
    """

    BACKENDS = ("redis", "memory")

    _memory_stores: "OrderedDict[str, InMemoryEntitlementStore]" = OrderedDict()
    _lock = threading.Lock()

    @classmethod
    def create(cls, session_id: str, backend: str | None = None) -> EntitlementStore:
        backend = (backend or settings.storage_backend).lower()
        if backend == "redis":
            return RedisEntitlementStore(session_id)
        if backend == "memory":
            return cls._memory_store(session_id)
        available = ", ".join(cls.BACKENDS)
        raise ValueError(f"Unknown storage backend: {backend}. Available backends: {available}")

    @classmethod
    def _memory_store(cls, session_id: str) -> InMemoryEntitlementStore:
        with cls._lock:
            store = cls._memory_stores.get(session_id)
            if store is not None:
                cls._memory_stores.move_to_end(session_id)
                return store
            store = InMemoryEntitlementStore(session_id)
            cls._memory_stores[session_id] = store
            logger.info("memory_store_created", extra={"session_id": session_id})
            while len(cls._memory_stores) > max(settings.memory_max_sessions, 1):
                evicted, _ = cls._memory_stores.popitem(last=False)
                logger.info("memory_store_evicted", extra={"session_id": evicted})
            return store

    @classmethod
    def reset_memory(cls) -> None:
        """Drop all in-process stores (tests)."""
        with cls._lock:
            cls._memory_stores.clear()
