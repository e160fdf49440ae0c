from __future__ import annotations

from typing import Mapping

CANVAS_SIZE: tuple[int, int] = (1100, 809)
DIVIDER_SIZE: tuple[int, int] = (890, 271)
WATERMARK_SIZE: tuple[int, int] = (140, 95)

# Vertical positions (px from top) of each overlay.
POSITIONS: dict[str, int] = {
    "header": 215,
    "subtitle": 255,
    "attendee": 315,
    "first_divider": 176,
    "second_divider": 331,
    "seminar_date": 395,
    "seminar": 465,
    "watermark": 580,
    "code_title": 695,
    "code": 715,
    "badge": 565,
}

# Horizontal anchors (px from left) for overlays that are not centered.
ANCHORS_X: dict[str, int] = {
    "code_title": 840,
    "code": 840,
    "watermark": 125,
    "badge": 785,
}

FONT_SIZES: dict[str, int] = {
    "header": 120,
    "subtitle": 19,
    "seminar_date": 19,
    "code_title": 15,
    "code": 13,
}

DARK = "#222222"
MUTED = "#444444"

NAME_FONT_THRESHOLDS: dict[int, int] = {34: 55, 42: 46}
NAME_FONT_DEFAULT = 39

TITLE_FONT_THRESHOLDS: dict[int, int] = {76: 18, 82: 17, 90: 16, 103: 14}
TITLE_FONT_DEFAULT = 12

HEADER_TEXT = "Certificate"
SUBTITLE_TEMPLATE = "{issuer} certifies that"
ATTENDANCE_TEMPLATE = "attended, on {date} at {time}, the {type_phrase}"
CODE_TITLE_TEXT = "Digital certificate"


def _capitalize(word: str) -> str:
    lowered = word.lower()
    return lowered[:1].upper() + lowered[1:]


def format_display_name(raw: str) -> str:
    """Title-case a person's name, treating apostrophes as word breaks.

    ``"MARY O'BRIEN"`` becomes ``"Mary O'Brien"``; hyphenated parts are left
    alone (``"jean-paul"`` becomes ``"Jean-paul"``).
    """

    words = (raw or "").split()
    return " ".join(
        "'".join(_capitalize(part) for part in word.split("'")) for word in words
    )


def select_font_size(length: int, thresholds: Mapping[int, int], default: int) -> int:
    """Return the size of the first threshold whose max length fits ``length``."""

    for max_length in sorted(thresholds):
        if length <= max_length:
            return thresholds[max_length]
    return default


def format_type_phrase(type_name: str | None) -> str:
    value = (type_name or "").strip()
    if value and value == value.upper():
        return value
    return value.lower()


def text_length(text: str) -> int:
    """Length used against the font thresholds: UTF-8 bytes, so accents count double."""

    return len(text.encode("utf-8"))
