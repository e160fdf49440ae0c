from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy import or_

from ..app import db
from ..models import Registration
from ..shared.certificates import DOCUMENT, IMAGE, CertificateService, get_certificate_service
from .certificate_delivery import process_registration


@dataclass
class ScanSummary:
    total: int = 0
    processed: int = 0
    skipped: int = 0
    orphaned: int = 0
    errors: int = 0


@dataclass
class PendingSummary:
    dispatched: int = 0
    orphaned: int = 0
    errors: int = 0
    lines: list[str] = field(default_factory=list)


def _dispatch(registration_id: int, sync: bool, send_email: bool) -> None:
    if sync:
        process_registration(registration_id, send_email=send_email)
        return
    from ..tasks import generate_certificate

    generate_certificate.delay(registration_id, send_email=send_email)


def _artifacts_present(service: CertificateService, registration: Registration) -> bool:
    if not registration.certificate_code:
        return False
    image = service.probe(registration, IMAGE)
    document = service.probe(registration, DOCUMENT)
    return image and document


def process_missing(
    send_email: bool = False,
    sync: bool = False,
    seminar_id: int | None = None,
    service: CertificateService | None = None,
) -> ScanSummary:
    """Find attendees whose artifacts are missing from storage and repair them.

    Storage is probed directly so artifacts removed out of band are noticed
    even when the existence cache still claims they are there.
    """

    service = service or get_certificate_service()
    query = db.session.query(Registration).filter(Registration.present.is_(True))
    if seminar_id is not None:
        query = query.filter(Registration.seminar_id == seminar_id)
    ids = [row.id for row in query.order_by(Registration.id).all()]

    summary = ScanSummary(total=len(ids))
    for registration_id in ids:
        try:
            registration = db.session.get(Registration, registration_id)
            if registration.user is None or registration.seminar is None:
                current_app.logger.warning(
                    "[CERT-SCAN] orphaned registration=%s", registration_id
                )
                summary.orphaned += 1
                continue
            if _artifacts_present(service, registration):
                summary.skipped += 1
                continue
            _dispatch(registration_id, sync, send_email)
            summary.processed += 1
        except Exception:
            db.session.rollback()
            summary.errors += 1
            current_app.logger.exception(
                "[CERT-SCAN] failed registration=%s", registration_id
            )

    current_app.logger.info(
        "[CERT-SCAN] total=%d processed=%d skipped=%d orphaned=%d errors=%d",
        summary.total,
        summary.processed,
        summary.skipped,
        summary.orphaned,
        summary.errors,
    )
    return summary


def process_pending(sync: bool = False, send_email: bool = True) -> PendingSummary:
    """Dispatch every attendee that still lacks a code or a delivered email."""

    rows = (
        db.session.query(Registration)
        .filter(Registration.present.is_(True))
        .filter(
            or_(
                Registration.certificate_sent.is_(False),
                Registration.certificate_code.is_(None),
            )
        )
        .order_by(Registration.id)
        .all()
    )

    summary = PendingSummary()
    for registration in rows:
        registration_id = registration.id
        try:
            if registration.user is None or registration.seminar is None:
                summary.orphaned += 1
                current_app.logger.warning(
                    "[CERT-PENDING] orphaned registration=%s user_id=%s seminar_id=%s",
                    registration_id,
                    registration.user_id,
                    registration.seminar_id,
                )
                continue
            email, seminar_name = registration.user.email, registration.seminar.name
            _dispatch(registration_id, sync, send_email)
            summary.dispatched += 1
            summary.lines.append(f"  - {email}: {seminar_name}")
        except Exception:
            db.session.rollback()
            summary.errors += 1
            current_app.logger.exception(
                "[CERT-PENDING] failed registration=%s", registration_id
            )
    return summary
