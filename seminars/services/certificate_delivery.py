from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy.orm import joinedload

from .. import emailer
from ..app import db
from ..models import Registration, Seminar
from ..shared.certificates import (
    DOCUMENT,
    IMAGE,
    CertificateService,
    ensure_certificate_code,
    get_certificate_service,
)
from ..shared.errors import NotificationFailure
from ..shared.redis_client import certificate_lock, get_redis

__all__ = [
    "CertificateOutcome",
    "load_registration",
    "process_registration",
    "send_certificate_email",
]

CERTIFICATE_TEMPLATE_ID = "certificate_generated"


@dataclass
class CertificateOutcome:
    registration_id: int
    status: str
    code: str | None = None
    image_generated: bool = False
    document_generated: bool = False
    email_sent: bool = False


def load_registration(registration_id: int) -> Registration | None:
    """Load a registration with its user, seminar and seminar type from the database."""

    return (
        db.session.query(Registration)
        .options(
            joinedload(Registration.user),
            joinedload(Registration.seminar).joinedload(Seminar.seminar_type),
        )
        .filter(Registration.id == registration_id)
        .populate_existing()
        .one_or_none()
    )


def _certificate_url(code: str) -> str:
    base = current_app.config["APP_BASE_URL"].rstrip("/")
    return f"{base}/certificate/{code}"


def send_certificate_email(registration: Registration, document: bytes) -> None:
    seminar = registration.seminar
    user = registration.user
    variables = {
        "subject": f"Your Certificate of Attendance - {seminar.name}",
        "user_name": user.name,
        "seminar_name": seminar.name,
        "seminar_date": seminar.scheduled_at.strftime("%d/%m/%Y"),
        "certificate_code": registration.certificate_code,
        "certificate_url": _certificate_url(registration.certificate_code),
    }
    attachment = emailer.Attachment(
        filename=f"certificate-{seminar.slug}.pdf",
        content=document,
        mimetype="application/pdf",
    )
    result = emailer.notify(user.email, CERTIFICATE_TEMPLATE_ID, variables, [attachment])
    if not result.get("ok"):
        raise NotificationFailure(
            f"certificate email to {user.email} failed: {result.get('detail')}"
        )


def _deliver_once(service: CertificateService, registration: Registration) -> bool:
    with certificate_lock(get_redis(), registration.certificate_code):
        db.session.refresh(registration)
        if registration.certificate_sent:
            return False
        send_certificate_email(registration, service.read_document(registration))
        registration.certificate_sent = True
        db.session.commit()
    return True


def process_registration(
    registration_id: int,
    send_email: bool = True,
    service: CertificateService | None = None,
) -> CertificateOutcome:
    """Bring one registration's certificate up to date.

    Every step is guarded by an existence or flag check, so running this again
    after a partial failure only performs the remaining work.
    """

    registration = load_registration(registration_id)
    if registration is None:
        current_app.logger.warning(
            "[CERT] registration not found registration=%s", registration_id
        )
        return CertificateOutcome(registration_id, "not_found")
    if not registration.present:
        return CertificateOutcome(registration_id, "absent")
    if registration.user is None or registration.seminar is None:
        current_app.logger.warning(
            "[CERT] orphaned registration=%s user_id=%s seminar_id=%s",
            registration.id,
            registration.user_id,
            registration.seminar_id,
        )
        return CertificateOutcome(registration_id, "orphaned")

    service = service or get_certificate_service()
    code = ensure_certificate_code(registration)
    outcome = CertificateOutcome(registration_id, "ok", code=code)

    if not service.exists(registration, IMAGE):
        service.generate_image(registration)
        outcome.image_generated = True

    if not service.exists(registration, DOCUMENT):
        service.generate_document(registration)
        outcome.document_generated = True

    if send_email and not registration.certificate_sent:
        outcome.email_sent = _deliver_once(service, registration)
        if outcome.email_sent:
            current_app.logger.info(
                "[CERT] email sent registration=%s email=%s",
                registration.id,
                registration.user.email,
            )

    return outcome
