import threading
from contextlib import contextmanager
from typing import Dict, List, Optional, Protocol

import redis

from clock import system_clock
from constants import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD, STORE_BACKEND
from errors import StoreError
from logging_config import get_logger

logger = get_logger(__name__)


class KeyValueBackend(Protocol):
    """Per-key atomic operations the room store is written against."""

    def set(self, key: str, value: str, ttl: int) -> None: ...

    def get(self, key: str) -> Optional[str]: ...

    def exists(self, key: str) -> bool: ...

    def expire(self, keys: List[str], ttl: int) -> None: ...

    def hset(self, key: str, field: str, value: str, ttl: int) -> None: ...

    def hdel(self, key: str, field: str, ttl: int) -> None: ...

    def hgetall(self, key: str) -> Dict[str, str]: ...

    def append(self, key: str, value: str, max_length: int, ttl: int) -> None: ...

    def lrange(self, key: str) -> List[str]: ...


@contextmanager
def _store_errors(operation: str, key: str):
    try:
        yield
    except redis.RedisError as e:
        logger.error(f"Redis {operation} failed for {key}: {e}", exc_info=True)
        raise StoreError(f"Store unavailable during {operation}") from e


class RedisBackend:
    def __init__(self, redis_client: Optional[redis.Redis] = None):
        if redis_client is None:
            logger.info(f"Initializing RedisBackend with connection to {REDIS_HOST}:{REDIS_PORT}")
            redis_client = redis.Redis(host=REDIS_HOST, port=REDIS_PORT, password=REDIS_PASSWORD, decode_responses=True)
        self.redis_client = redis_client

    def ping(self):
        with _store_errors("ping", "-"):
            self.redis_client.ping()
        logger.info("Redis client connected successfully")

    def set(self, key: str, value: str, ttl: int):
        with _store_errors("set", key):
            self.redis_client.set(key, value, ex=ttl)

    def get(self, key: str) -> Optional[str]:
        with _store_errors("get", key):
            return self.redis_client.get(key)

    def exists(self, key: str) -> bool:
        with _store_errors("exists", key):
            return bool(self.redis_client.exists(key))

    def expire(self, keys: List[str], ttl: int):
        with _store_errors("expire", ",".join(keys)):
            pipe = self.redis_client.pipeline()
            for key in keys:
                pipe.expire(key, ttl)
            pipe.execute()

    def hset(self, key: str, field: str, value: str, ttl: int):
        with _store_errors("hset", key):
            pipe = self.redis_client.pipeline()
            pipe.hset(key, field, value)
            pipe.expire(key, ttl)
            pipe.execute()

    def hdel(self, key: str, field: str, ttl: int):
        with _store_errors("hdel", key):
            pipe = self.redis_client.pipeline()
            pipe.hdel(key, field)
            pipe.expire(key, ttl)
            pipe.execute()

    def hgetall(self, key: str) -> Dict[str, str]:
        with _store_errors("hgetall", key):
            return self.redis_client.hgetall(key)

    def append(self, key: str, value: str, max_length: int, ttl: int):
        # MULTI/EXEC keeps push, trim and expire atomic for concurrent writers
        with _store_errors("append", key):
            pipe = self.redis_client.pipeline()
            pipe.rpush(key, value)
            pipe.ltrim(key, -max_length, -1)
            pipe.expire(key, ttl)
            pipe.execute()

    def lrange(self, key: str) -> List[str]:
        with _store_errors("lrange", key):
            return self.redis_client.lrange(key, 0, -1)


class MemoryBackend:
    """In-process backend with TTL expiry driven by an injectable clock."""

    def __init__(self, clock=system_clock):
        self.clock = clock
        self._data: Dict[str, object] = {}
        self._expires: Dict[str, float] = {}
        self._lock = threading.Lock()

    def _live(self, key: str):
        expires_at = self._expires.get(key)
        if expires_at is not None and expires_at <= self.clock.now():
            self._data.pop(key, None)
            self._expires.pop(key, None)
        return self._data.get(key)

    def _touch(self, key: str, ttl: int):
        if key in self._data:
            self._expires[key] = self.clock.now() + ttl

    def set(self, key: str, value: str, ttl: int):
        with self._lock:
            self._data[key] = value
            self._touch(key, ttl)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._live(key)
            return value if isinstance(value, str) else None

    def exists(self, key: str) -> bool:
        with self._lock:
            return self._live(key) is not None

    def expire(self, keys: List[str], ttl: int):
        with self._lock:
            for key in keys:
                if self._live(key) is not None:
                    self._touch(key, ttl)

    def hset(self, key: str, field: str, value: str, ttl: int):
        with self._lock:
            mapping = self._live(key)
            if not isinstance(mapping, dict):
                mapping = {}
                self._data[key] = mapping
            mapping[field] = value
            self._touch(key, ttl)

    def hdel(self, key: str, field: str, ttl: int):
        with self._lock:
            mapping = self._live(key)
            if not isinstance(mapping, dict):
                return
            mapping.pop(field, None)
            if not mapping:
                # Redis drops empty hashes
                self._data.pop(key, None)
                self._expires.pop(key, None)
                return
            self._touch(key, ttl)

    def hgetall(self, key: str) -> Dict[str, str]:
        with self._lock:
            mapping = self._live(key)
            return dict(mapping) if isinstance(mapping, dict) else {}

    def append(self, key: str, value: str, max_length: int, ttl: int):
        with self._lock:
            items = self._live(key)
            if not isinstance(items, list):
                items = []
            items.append(value)
            self._data[key] = items[-max_length:]
            self._touch(key, ttl)

    def lrange(self, key: str) -> List[str]:
        with self._lock:
            items = self._live(key)
            return list(items) if isinstance(items, list) else []


_backend: Optional[KeyValueBackend] = None


def get_backend() -> KeyValueBackend:
    """Shared backend for the process, chosen by STORE_BACKEND."""
    global _backend
    if _backend is None:
        if STORE_BACKEND == "memory":
            logger.warning("Using in-memory store; rooms are not shared across processes")
            _backend = MemoryBackend()
        else:
            backend = RedisBackend()
            backend.ping()
            _backend = backend
    return _backend
