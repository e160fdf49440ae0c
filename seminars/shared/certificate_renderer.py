"""Certificate artifacts: the JPEG certificate and the PDF that wraps it.

The renderer receives everything it needs at construction (the asset bundle)
and per call (the text fields), so rendering never touches the database or
the application config.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .certificates_layout import (
    ANCHORS_X,
    ATTENDANCE_TEMPLATE,
    CANVAS_SIZE,
    CODE_TITLE_TEXT,
    DARK,
    DIVIDER_SIZE,
    FONT_SIZES,
    HEADER_TEXT,
    MUTED,
    NAME_FONT_DEFAULT,
    NAME_FONT_THRESHOLDS,
    POSITIONS,
    SUBTITLE_TEMPLATE,
    TITLE_FONT_DEFAULT,
    TITLE_FONT_THRESHOLDS,
    WATERMARK_SIZE,
    format_display_name,
    format_type_phrase,
    select_font_size,
    text_length,
)
from .errors import RenderFailure

JPEG_QUALITY = 100


@dataclass(frozen=True)
class CertificateAssets:
    directory: str
    background: str = "Border.png"
    divider: str = "NameLine.png"
    badge: str = "Medal.png"
    watermark: str = "Watermark.png"
    script_font: str = "script.ttf"
    light_font: str = "body-light.otf"
    regular_font: str = "body-regular.otf"

    def path(self, filename: str) -> str:
        return os.path.join(self.directory, filename)


@dataclass(frozen=True)
class CertificateFields:
    attendee_name: str
    seminar_name: str
    scheduled_at: datetime
    seminar_type: str
    code: str
    issuer: str


class CertificateRenderer:
    def __init__(self, assets: CertificateAssets) -> None:
        self.assets = assets

    def _image(self, filename: str, size: tuple[int, int] | None = None) -> Image.Image:
        path = self.assets.path(filename)
        try:
            with Image.open(path) as img:
                img.load()
                layer = img.convert("RGBA")
        except (OSError, UnidentifiedImageError) as exc:
            raise RenderFailure(f"Unreadable certificate asset {path}: {exc}") from exc
        if size is not None:
            layer = layer.resize(size, Image.Resampling.LANCZOS)
        return layer

    def _font(self, filename: str, size: int) -> ImageFont.FreeTypeFont:
        path = self.assets.path(filename)
        try:
            return ImageFont.truetype(path, size)
        except OSError as exc:
            raise RenderFailure(f"Unreadable certificate font {path}: {exc}") from exc

    def _text(self, draw, x, y, text, font_file, size, color) -> None:
        font = self._font(font_file, size)
        try:
            draw.text((x, y), text, font=font, fill=color, anchor="ms")
        except (OSError, ValueError) as exc:
            raise RenderFailure(f"Text rendering failed for {text!r}: {exc}") from exc

    def render_image(self, fields: CertificateFields) -> bytes:
        a = self.assets
        certificate = self._image(a.background, CANVAS_SIZE)
        width, _ = certificate.size
        center_x = width // 2

        divider = self._image(a.divider, DIVIDER_SIZE)
        divider_x = (width - divider.width) // 2
        for key in ("first_divider", "second_divider"):
            certificate.alpha_composite(divider, (divider_x, POSITIONS[key]))
        badge = self._image(a.badge)
        certificate.alpha_composite(badge, (ANCHORS_X["badge"], POSITIONS["badge"]))
        watermark = self._image(a.watermark, WATERMARK_SIZE)
        certificate.alpha_composite(
            watermark, (ANCHORS_X["watermark"], POSITIONS["watermark"])
        )

        draw = ImageDraw.Draw(certificate)
        self._text(
            draw, center_x, POSITIONS["header"], HEADER_TEXT,
            a.script_font, FONT_SIZES["header"], DARK,
        )
        self._text(
            draw, center_x, POSITIONS["subtitle"],
            SUBTITLE_TEMPLATE.format(issuer=fields.issuer),
            a.light_font, FONT_SIZES["subtitle"], MUTED,
        )
        self._text(
            draw, ANCHORS_X["code_title"], POSITIONS["code_title"], CODE_TITLE_TEXT,
            a.regular_font, FONT_SIZES["code_title"], DARK,
        )

        display_name = format_display_name(fields.attendee_name)
        name_pt = select_font_size(
            text_length(display_name), NAME_FONT_THRESHOLDS, NAME_FONT_DEFAULT
        )
        self._text(
            draw, center_x, POSITIONS["attendee"], display_name,
            a.script_font, name_pt, DARK,
        )

        attendance = ATTENDANCE_TEMPLATE.format(
            date=fields.scheduled_at.strftime("%d/%m/%Y"),
            time=fields.scheduled_at.strftime("%H:%M"),
            type_phrase=format_type_phrase(fields.seminar_type),
        )
        self._text(
            draw, center_x, POSITIONS["seminar_date"], attendance,
            a.light_font, FONT_SIZES["seminar_date"], MUTED,
        )

        title = fields.seminar_name.strip()
        title_pt = select_font_size(text_length(title), TITLE_FONT_THRESHOLDS, TITLE_FONT_DEFAULT)
        self._text(
            draw, center_x, POSITIONS["seminar"], title,
            a.light_font, title_pt, DARK,
        )
        self._text(
            draw, ANCHORS_X["code"], POSITIONS["code"], fields.code,
            a.regular_font, FONT_SIZES["code"], DARK,
        )

        out = BytesIO()
        certificate.convert("RGB").save(out, format="JPEG", quality=JPEG_QUALITY)
        return out.getvalue()

    def render_document(self, image_bytes: bytes) -> bytes:
        """Wrap a rendered certificate in a one-page PDF of the same size."""

        if not image_bytes:
            raise RenderFailure("Cannot build a certificate PDF without image bytes")
        try:
            image = ImageReader(BytesIO(image_bytes))
            width, height = image.getSize()
        except Exception as exc:
            raise RenderFailure(f"Certificate image is not readable: {exc}") from exc

        buffer = BytesIO()
        c = canvas.Canvas(buffer, pagesize=(width, height), invariant=1)
        c.drawImage(image, 0, 0, width=width, height=height)
        c.showPage()
        c.save()
        return buffer.getvalue()
