from __future__ import annotations

import io

from flask import Blueprint, abort, current_app, redirect, request, send_file
from sqlalchemy.orm import joinedload

from ..app import db
from ..models import Registration, Seminar
from ..shared.certificates import DOCUMENT, IMAGE, get_certificate_service
from ..shared.errors import ObjectNotFound, StorageFailure
from ..shared.storage import LocalObjectStore

bp = Blueprint("certificates", __name__)


def _registration_or_404(code: str) -> Registration:
    registration = (
        db.session.query(Registration)
        .options(
            joinedload(Registration.user),
            joinedload(Registration.seminar).joinedload(Seminar.seminar_type),
        )
        .filter(Registration.certificate_code == code)
        .one_or_none()
    )
    if registration is None or registration.seminar is None or registration.user is None:
        abort(404)
    return registration


@bp.get("/certificate/<code>")
def show(code: str):
    registration = _registration_or_404(code)
    service = get_certificate_service()
    if not service.confirm(registration, DOCUMENT):
        if not service.confirm(registration, IMAGE):
            service.generate_image(registration)
        service.generate_document(registration)
    return redirect(service.signed_url(registration, DOCUMENT), code=302)


@bp.get("/certificate/<code>/jpg")
def show_jpg(code: str):
    registration = _registration_or_404(code)
    service = get_certificate_service()
    if not service.confirm(registration, IMAGE):
        service.generate_image(registration)
    return redirect(service.signed_url(registration, IMAGE), code=302)


@bp.get(f"{LocalObjectStore.url_prefix}/<path:key>")
def download_file(key: str):
    store = current_app.extensions["certificate_store"]
    if not isinstance(store, LocalObjectStore):
        abort(404)
    if not store.verify_token(key, request.args.get("token")):
        abort(403)
    try:
        data = store.get(key)
    except ObjectNotFound:
        abort(404)
    except StorageFailure:
        current_app.logger.exception("[CERT] file read failed key=%s", key)
        abort(404)
    mimetype = "application/pdf" if key.endswith(".pdf") else "image/jpeg"
    return send_file(
        io.BytesIO(data),
        mimetype=mimetype,
        download_name=key.rsplit("/", 1)[-1],
    )
