"""
Revocation store adapters.

An entry maps `<prefix><token>` to a placeholder value with a TTL equal to
the remaining lifetime of the token. Only key existence matters.

- RedisRevocationStore: shared store for real deployments
- InMemoryRevocationStore: single-process store for development and tests
"""
from __future__ import annotations

import logging
import math
import threading
import time
from datetime import timedelta
from typing import Callable, Dict

import redis
from redis.exceptions import RedisError

from models.errors import InvalidArgumentError, RevocationStoreError
from services.ports import RevocationStore

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "blacklist:token:"
PLACEHOLDER = "1"


def _validate(token: str, ttl: timedelta | None = None) -> None:
    if not token:
        raise InvalidArgumentError("token cannot be empty")
    if ttl is not None and ttl.total_seconds() <= 0:
        raise InvalidArgumentError("ttl must be positive")


def _ttl_millis(ttl: timedelta) -> int:
    # Round up: the entry must not expire before the token does.
    return max(1, math.ceil(ttl.total_seconds() * 1000))


class RedisRevocationStore(RevocationStore):
    """Revocation list in Redis, expiry handled by Redis itself."""

    def __init__(self, client: redis.Redis, prefix: str = DEFAULT_KEY_PREFIX):
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, *, prefix: str = DEFAULT_KEY_PREFIX, socket_timeout: float = 2.0):
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client, prefix=prefix)

    def _key(self, token: str) -> str:
        return self.prefix + token

    def add(self, token: str, ttl: timedelta) -> None:
        _validate(token, ttl)
        key, millis = self._key(token), _ttl_millis(ttl)
        try:
            # NX creates, PEXPIRE GT only ever extends: a shorter re-add keeps the longer TTL.
            pipe = self.client.pipeline(transaction=True)
            pipe.set(key, PLACEHOLDER, px=millis, nx=True)
            pipe.pexpire(key, millis, gt=True)
            pipe.execute()
        except RedisError as exc:
            raise RevocationStoreError("failed to add token to revocation list") from exc

    def add_if_absent(self, token: str, ttl: timedelta) -> bool:
        _validate(token, ttl)
        try:
            created = self.client.set(self._key(token), PLACEHOLDER, px=_ttl_millis(ttl), nx=True)
        except RedisError as exc:
            raise RevocationStoreError("failed to add token to revocation list") from exc
        return bool(created)

    def is_revoked(self, token: str) -> bool:
        _validate(token)
        try:
            return self.client.exists(self._key(token)) > 0
        except RedisError as exc:
            raise RevocationStoreError("failed to check token revocation status") from exc

    def ping(self) -> None:
        try:
            self.client.ping()
        except RedisError as exc:
            raise RevocationStoreError("revocation store unreachable") from exc


class InMemoryRevocationStore(RevocationStore):
    """
    Thread-safe dict of key -> monotonic expiry. Expired entries are dropped
    lazily on access. Not shared between processes.
    """

    def __init__(self, prefix: str = DEFAULT_KEY_PREFIX, clock: Callable[[], float] = time.monotonic):
        self.prefix = prefix
        self._clock = clock
        self._entries: Dict[str, float] = {}
        self._lock = threading.Lock()

    def _live(self, key: str, now: float) -> bool:
        expires = self._entries.get(key)
        if expires is None:
            return False
        if expires <= now:
            del self._entries[key]
            return False
        return True

    def _purge(self, now: float) -> None:
        expired = [k for k, exp in self._entries.items() if exp <= now]
        for k in expired:
            del self._entries[k]

    def add(self, token: str, ttl: timedelta) -> None:
        _validate(token, ttl)
        with self._lock:
            now = self._clock()
            self._purge(now)
            key = self.prefix + token
            expires = now + ttl.total_seconds()
            self._entries[key] = max(self._entries.get(key, expires), expires)

    def add_if_absent(self, token: str, ttl: timedelta) -> bool:
        _validate(token, ttl)
        key = self.prefix + token
        with self._lock:
            now = self._clock()
            if self._live(key, now):
                return False
            self._entries[key] = now + ttl.total_seconds()
            return True

    def is_revoked(self, token: str) -> bool:
        _validate(token)
        with self._lock:
            return self._live(self.prefix + token, self._clock())

    def __len__(self) -> int:
        with self._lock:
            self._purge(self._clock())
            return len(self._entries)


def build_revocation_store(config) -> RevocationStore:
    """Pick the backend named by REVOCATION_BACKEND."""
    backend = (config.get("REVOCATION_BACKEND") or "redis").lower()
    prefix = config.get("REVOCATION_KEY_PREFIX", DEFAULT_KEY_PREFIX)
    if backend == "memory":
        logger.warning("using in-memory revocation store; revocations are not shared between processes")
        return InMemoryRevocationStore(prefix=prefix)
    if backend == "redis":
        return RedisRevocationStore.from_url(
            config["REDIS_URL"],
            prefix=prefix,
            socket_timeout=float(config.get("REDIS_SOCKET_TIMEOUT", 2.0)),
        )
    raise ValueError(f"Unknown REVOCATION_BACKEND: {backend}")
