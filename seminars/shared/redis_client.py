from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

import redis
from flask import Flask, current_app

from .errors import CertificateBusy

logger = logging.getLogger("seminars.certificates")

LOCK_TIMEOUT_SECONDS = 120
LOCK_BLOCKING_TIMEOUT_SECONDS = 10


def init_redis(app: Flask) -> None:
    # from_url does not connect until the first command.
    app.extensions["redis"] = redis.Redis.from_url(app.config["REDIS_URL"])


def get_redis():
    return current_app.extensions["redis"]


@contextmanager
def certificate_lock(client, code: str) -> Iterator[None]:
    """Hold a Redis lock scoped to one certificate code."""

    lock = client.lock(
        f"certificate-lock:{code}",
        timeout=LOCK_TIMEOUT_SECONDS,
        blocking_timeout=LOCK_BLOCKING_TIMEOUT_SECONDS,
    )
    if not lock.acquire():
        logger.warning("[CERT-LOCK] busy code=%s", code)
        raise CertificateBusy(f"certificate {code} is locked by another worker")
    try:
        yield
    finally:
        try:
            lock.release()
        except redis.exceptions.LockError:
            # Lock expired while held; the next holder already owns it.
            logger.warning("[CERT-LOCK] expired before release code=%s", code)
