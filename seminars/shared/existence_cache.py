"""Memoized "does this artifact exist in storage" answers, kept in Redis."""

from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger("seminars.certificates")

EXISTS_TTL_SECONDS = 86400

_TRUE = "1"
_FALSE = "0"


def exists_key(kind: str, code: str) -> str:
    return f"exists:{kind}:{code}"


class ExistenceCache:
    def __init__(self, client, ttl_seconds: int = EXISTS_TTL_SECONDS) -> None:
        self._client = client
        self.ttl_seconds = ttl_seconds

    def get(self, key: str) -> bool | None:
        raw = self._client.get(key)
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode()
        return raw == _TRUE

    def put(self, key: str, value: bool, ttl: int | None = None) -> None:
        self._client.setex(key, ttl or self.ttl_seconds, _TRUE if value else _FALSE)

    def remember(self, key: str, ttl: int | None, compute: Callable[[], bool]) -> bool:
        cached = self.get(key)
        if cached is not None:
            return cached
        value = bool(compute())
        self.put(key, value, ttl)
        return value

    def forget(self, key: str) -> None:
        self._client.delete(key)

    def check(self, kind: str, code: str, probe: Callable[[], bool]) -> bool:
        return self.remember(exists_key(kind, code), self.ttl_seconds, probe)

    def mark_exists(self, kind: str, code: str) -> None:
        self.put(exists_key(kind, code), True)

    def invalidate(self, kind: str, code: str) -> None:
        """Drop a cached answer, e.g. after an artifact was deleted out of band."""

        self.forget(exists_key(kind, code))
        logger.info("[CERT-CACHE] invalidated kind=%s code=%s", kind, code)
