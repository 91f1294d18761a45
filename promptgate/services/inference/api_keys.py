"""
API-ключи провайдеров инференса: на сессию и провайдера, отдельно от записей доступа.
Бэкенд memory только для локального запуска и тестов: хранит не больше
settings.memory_max_sessions сессий, самые давние вытесняются.
"""
import logging
import threading
from collections import OrderedDict

import redis

from promptgate.core.config import settings
from promptgate.storage.redis_store import get_redis_client

logger = logging.getLogger(__name__)

# session_id -> {provider: api_key}
_memory_keys: "OrderedDict[str, dict[str, str]]" = OrderedDict()
_memory_lock = threading.Lock()


class ApiKeyStore:
    def __init__(self, session_id: str, client: redis.Redis | None = None, backend: str | None = None) -> None:
        self.session_id = session_id
        self.backend = (backend or settings.storage_backend).lower()
        self.client = client
        if self.backend == "redis" and self.client is None:
            self.client = get_redis_client()

    def _key(self, provider: str) -> str:
        return f"{settings.storage_key_prefix}:session:{self.session_id}:api_key:{provider.lower()}"

    def set(self, provider: str, api_key: str) -> None:
        api_key = api_key.strip()
        if not api_key:
            raise ValueError("api_key must not be empty")
        if self.backend == "memory":
            with _memory_lock:
                _memory_keys.setdefault(self.session_id, {})[provider.lower()] = api_key
                _memory_keys.move_to_end(self.session_id)
                while len(_memory_keys) > max(settings.memory_max_sessions, 1):
                    evicted, _ = _memory_keys.popitem(last=False)
                    logger.info("api_keys_evicted", extra={"session_id": evicted})
            return
        self.client.set(self._key(provider), api_key)

    def get(self, provider: str) -> str | None:
        if self.backend == "memory":
            with _memory_lock:
                return _memory_keys.get(self.session_id, {}).get(provider.lower())
        try:
            return self.client.get(self._key(provider))
        except redis.RedisError as e:
            logger.warning("api_key_read_failed", extra={"session_id": self.session_id, "error": str(e)})
            return None

    def clear(self, provider: str) -> None:
        if self.backend == "memory":
            with _memory_lock:
                keys = _memory_keys.get(self.session_id)
                if keys is not None:
                    keys.pop(provider.lower(), None)
                    if not keys:
                        del _memory_keys[self.session_id]
            return
        self.client.delete(self._key(provider))


def reset_memory_keys() -> None:
    with _memory_lock:
        _memory_keys.clear()
