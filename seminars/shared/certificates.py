from __future__ import annotations

import uuid

from flask import Flask, current_app
from sqlalchemy import or_, update

from ..app import db
from ..models import Registration
from .certificate_renderer import CertificateAssets, CertificateFields, CertificateRenderer
from .errors import ObjectNotFound
from .existence_cache import ExistenceCache, exists_key
from .redis_client import get_redis, init_redis
from .storage import VISIBILITY_PRIVATE, ObjectStore, build_object_store

IMAGE = "image"
DOCUMENT = "document"
_EXTENSIONS = {IMAGE: "jpg", DOCUMENT: "pdf"}

SIGNED_URL_TTL_SECONDS = 300


def generate_certificate_code() -> str:
    return str(uuid.uuid4())


def ensure_certificate_code(registration: Registration) -> str:
    """Return the registration's certificate code, assigning one on first use.

    The assignment is a conditional UPDATE, so when two workers race the
    first write wins and both callers end up returning the same code.
    """

    if registration.certificate_code:
        return registration.certificate_code

    candidate = generate_certificate_code()
    result = db.session.execute(
        update(Registration)
        .where(Registration.id == registration.id)
        .where(
            or_(
                Registration.certificate_code.is_(None),
                Registration.certificate_code == "",
            )
        )
        .values(certificate_code=candidate)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    db.session.refresh(registration)
    if result.rowcount:
        current_app.logger.info(
            "[CERT-CODE] assigned registration=%s code=%s",
            registration.id,
            registration.certificate_code,
        )
    else:
        current_app.logger.info(
            "[CERT-CODE] kept concurrent assignment registration=%s code=%s",
            registration.id,
            registration.certificate_code,
        )
    return registration.certificate_code


def certificate_base_path(registration: Registration) -> str:
    seminar = registration.seminar
    year = seminar.scheduled_at.year
    return f"certificates/{year}/{seminar.slug}/{registration.certificate_code}"


def artifact_key(registration: Registration, kind: str) -> str:
    return f"{certificate_base_path(registration)}.{_EXTENSIONS[kind]}"


def certificate_fields(registration: Registration) -> CertificateFields:
    seminar = registration.seminar
    seminar_type = seminar.seminar_type.name if seminar.seminar_type else ""
    return CertificateFields(
        attendee_name=registration.user.name,
        seminar_name=seminar.name,
        scheduled_at=seminar.scheduled_at,
        seminar_type=seminar_type,
        code=registration.certificate_code,
        issuer=current_app.config["CERTIFICATE_ISSUER"],
    )


class CertificateService:
    """Existence checks, generation and signing for one registration's artifacts."""

    def __init__(
        self, store: ObjectStore, cache: ExistenceCache, renderer: CertificateRenderer
    ) -> None:
        self.store = store
        self.cache = cache
        self.renderer = renderer

    def exists(self, registration: Registration, kind: str) -> bool:
        key = artifact_key(registration, kind)
        return self.cache.check(
            kind, registration.certificate_code, lambda: self.store.exists(key)
        )

    def probe(self, registration: Registration, kind: str) -> bool:
        """Ask the store directly and overwrite whatever the cache believed."""

        found = self.store.exists(artifact_key(registration, kind))
        self.cache.put(exists_key(kind, registration.certificate_code), found)
        return found

    def confirm(self, registration: Registration, kind: str) -> bool:
        """Cached answer, double-checked against the store when it says yes."""

        if not self.exists(registration, kind):
            return False
        if self.store.exists(artifact_key(registration, kind)):
            return True
        current_app.logger.warning(
            "[CERT-CACHE] stale entry kind=%s code=%s",
            kind,
            registration.certificate_code,
        )
        self.cache.invalidate(kind, registration.certificate_code)
        return False

    def generate_image(self, registration: Registration) -> bytes:
        ensure_certificate_code(registration)
        image_bytes = self.renderer.render_image(certificate_fields(registration))
        key = artifact_key(registration, IMAGE)
        self.store.put(key, image_bytes, VISIBILITY_PRIVATE)
        self.cache.mark_exists(IMAGE, registration.certificate_code)
        current_app.logger.info(
            "[CERT] image uploaded registration=%s key=%s", registration.id, key
        )
        return image_bytes

    def _image_bytes(self, registration: Registration) -> bytes:
        try:
            return self.store.get(artifact_key(registration, IMAGE))
        except ObjectNotFound:
            current_app.logger.warning(
                "[CERT] image missing from store, regenerating registration=%s",
                registration.id,
            )
            self.cache.invalidate(IMAGE, registration.certificate_code)
            return self.generate_image(registration)

    def generate_document(self, registration: Registration) -> bytes:
        ensure_certificate_code(registration)
        if not self.exists(registration, IMAGE):
            image_bytes = self.generate_image(registration)
        else:
            image_bytes = self._image_bytes(registration)
        document_bytes = self.renderer.render_document(image_bytes)
        key = artifact_key(registration, DOCUMENT)
        self.store.put(key, document_bytes, VISIBILITY_PRIVATE)
        self.cache.mark_exists(DOCUMENT, registration.certificate_code)
        current_app.logger.info(
            "[CERT] document uploaded registration=%s key=%s", registration.id, key
        )
        return document_bytes

    def read_document(self, registration: Registration) -> bytes:
        try:
            return self.store.get(artifact_key(registration, DOCUMENT))
        except ObjectNotFound:
            current_app.logger.warning(
                "[CERT] document missing from store, regenerating registration=%s",
                registration.id,
            )
            self.cache.invalidate(DOCUMENT, registration.certificate_code)
            return self.generate_document(registration)

    def signed_url(
        self, registration: Registration, kind: str = DOCUMENT,
        ttl_seconds: int = SIGNED_URL_TTL_SECONDS,
    ) -> str:
        return self.store.signed_url(artifact_key(registration, kind), ttl_seconds)


def init_certificates(app: Flask) -> None:
    init_redis(app)
    app.extensions["certificate_store"] = build_object_store(app.config)
    app.extensions["certificate_renderer"] = CertificateRenderer(
        CertificateAssets(app.config["CERTIFICATE_ASSETS_DIR"])
    )


def get_certificate_service() -> CertificateService:
    ext = current_app.extensions
    return CertificateService(
        ext["certificate_store"],
        ExistenceCache(get_redis()),
        ext["certificate_renderer"],
    )
