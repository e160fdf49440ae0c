"""Celery tasks for certificate generation and delivery."""

from __future__ import annotations

import json
import time

from celery import shared_task
from celery.utils.log import get_task_logger

from .services.certificate_delivery import process_registration
from .shared.redis_client import get_redis

logger = get_task_logger(__name__)

FAILED_LIST = "certificates:failed"


def record_terminal_failure(
    registration_id: int, exc: BaseException, task_id: str | None = None
) -> None:
    payload = json.dumps(
        {
            "registration_id": registration_id,
            "error": type(exc).__name__,
            "message": str(exc),
            "task_id": task_id,
            "ts": time.time(),
        }
    )
    get_redis().rpush(FAILED_LIST, payload)
    logger.error(
        "[CERT-FAIL] registration=%s task_id=%s error=%s: %s",
        registration_id,
        task_id,
        type(exc).__name__,
        exc,
    )


@shared_task(
    bind=True,
    name="certificates.generate",
    max_retries=2,
    default_retry_delay=60,
)
def generate_certificate(self, registration_id: int, send_email: bool = True) -> dict:
    try:
        outcome = process_registration(registration_id, send_email=send_email)
    except Exception as exc:
        if self.request.retries >= self.max_retries:
            record_terminal_failure(registration_id, exc, self.request.id)
            raise
        logger.warning(
            "[CERT-RETRY] registration=%s attempt=%d error=%s",
            registration_id,
            self.request.retries + 1,
            exc,
        )
        raise self.retry(exc=exc)
    return {
        "registration_id": outcome.registration_id,
        "status": outcome.status,
        "code": outcome.code,
        "email_sent": outcome.email_sent,
    }
