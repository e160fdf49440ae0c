import json
import logging
import os
import re
import smtplib
import sys
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from email.message import EmailMessage

from flask import render_template
from jinja2 import TemplateNotFound

logger = logging.getLogger("seminars.mailer")
if not logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    logger.addHandler(handler)
logger.setLevel(logging.INFO)

_SPLIT_RE = re.compile(r"[;,]")


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes
    mimetype: str = "application/octet-stream"


def _iter_tokens(recipients: Sequence[str] | str | None) -> Iterable[str]:
    if recipients is None:
        return []
    if isinstance(recipients, str):
        return (part for part in _SPLIT_RE.split(recipients))
    return (str(value) for value in recipients)


def normalize_recipients(recipients: Sequence[str] | str | None) -> tuple[list[str], str]:
    """Split, validate and de-duplicate recipients for the envelope and header."""

    seen: set[str] = set()
    kept: list[str] = []
    for raw in _iter_tokens(recipients):
        candidate = (raw or "").strip()
        if not candidate:
            continue
        normalized = candidate.lower()
        if "@" not in normalized or "." not in normalized.split("@")[-1]:
            logger.warning("[MAIL-INVALID-RECIPIENT] token=%s", candidate)
            continue
        if normalized in seen:
            continue
        seen.add(normalized)
        kept.append(candidate)
    return kept, ", ".join(kept)


def _stringify_envelope(recipients: Sequence[str]) -> str:
    return json.dumps(list(recipients))


def send(
    recipients: Sequence[str] | str | None,
    subject: str,
    body: str,
    html: str | None = None,
    attachments: Sequence[Attachment] = (),
):
    host = os.getenv("SMTP_HOST")
    port = os.getenv("SMTP_PORT")
    user = os.getenv("SMTP_USER")
    password = os.getenv("SMTP_PASS")
    from_addr = os.getenv("SMTP_FROM_DEFAULT")
    from_name = os.getenv("SMTP_FROM_NAME", "")

    envelope, header = normalize_recipients(recipients)
    mode = "real"
    if not host or not port or not from_addr:
        mode = "stub"
        logger.info(
            "[MAIL-OUT] mode=%s to_header=%s envelope=%s subject=\"%s\" host=%s result=stub",
            mode,
            header,
            _stringify_envelope(envelope),
            subject,
            host,
        )
        return {"ok": False, "detail": "stub: missing config"}

    if not envelope:
        logger.warning("[MAIL-NO-RECIPIENTS] subject=\"%s\" host=%s", subject, host)
        return {"ok": False, "detail": "no valid recipients"}

    try:
        port_int = int(port)
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["To"] = header
        msg["From"] = f"{from_name} <{from_addr}>" if from_name else from_addr
        msg.set_content(body)
        if html:
            msg.add_alternative(html, subtype="html")
        for attachment in attachments:
            maintype, _, subtype = attachment.mimetype.partition("/")
            msg.add_attachment(
                attachment.content,
                maintype=maintype,
                subtype=subtype or "octet-stream",
                filename=attachment.filename,
            )
        if port_int == 465:
            server = smtplib.SMTP_SSL(host, port_int)
        else:
            server = smtplib.SMTP(host, port_int)
        with server:
            if port_int == 587:
                server.starttls()
            if user and password:
                server.login(user, password)
            server.send_message(msg, from_addr=from_addr, to_addrs=envelope)
        logger.info(
            "[MAIL-OUT] mode=%s to_header=%s envelope=%s subject=\"%s\" attachments=%d host=%s result=sent",
            mode,
            header,
            _stringify_envelope(envelope),
            subject,
            len(attachments),
            host,
        )
        return {"ok": True, "detail": "sent"}
    except (OSError, smtplib.SMTPException, ValueError) as e:
        logger.info(
            "[MAIL-OUT] mode=%s to_header=%s envelope=%s subject=\"%s\" host=%s result=%s",
            mode,
            header,
            _stringify_envelope(envelope),
            subject,
            host,
            e,
        )
        return {"ok": False, "detail": str(e)}


def notify(
    to: str,
    template_id: str,
    variables: dict,
    attachments: Sequence[Attachment] = (),
):
    """Render ``emails/<template_id>`` (text, optional HTML) and send it."""

    body = render_template(f"emails/{template_id}.txt", **variables)
    try:
        html = render_template(f"emails/{template_id}.html", **variables)
    except TemplateNotFound:
        html = None
    subject = variables.get("subject") or template_id.replace("_", " ").capitalize()
    return send(to, subject, body, html=html, attachments=attachments)
