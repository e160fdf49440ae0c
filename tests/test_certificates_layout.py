import pytest

from seminars.shared.certificates_layout import (
    NAME_FONT_DEFAULT,
    NAME_FONT_THRESHOLDS,
    TITLE_FONT_DEFAULT,
    TITLE_FONT_THRESHOLDS,
    format_display_name,
    format_type_phrase,
    select_font_size,
    text_length,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("MARY O'BRIEN", "Mary O'Brien"),
        ("jean-paul", "Jean-paul"),
        ("  ana   maria  SOUZA ", "Ana Maria Souza"),
        ("d'artagnan", "D'Artagnan"),
        ("", ""),
    ],
)
def test_format_display_name(raw, expected):
    assert format_display_name(raw) == expected


def test_name_sizes_follow_thresholds():
    assert select_font_size(20, NAME_FONT_THRESHOLDS, NAME_FONT_DEFAULT) == 55
    assert select_font_size(34, NAME_FONT_THRESHOLDS, NAME_FONT_DEFAULT) == 55
    assert select_font_size(40, NAME_FONT_THRESHOLDS, NAME_FONT_DEFAULT) == 46
    assert select_font_size(43, NAME_FONT_THRESHOLDS, NAME_FONT_DEFAULT) == 39


def test_title_sizes_follow_thresholds():
    assert select_font_size(80, TITLE_FONT_THRESHOLDS, TITLE_FONT_DEFAULT) == 17
    assert select_font_size(76, TITLE_FONT_THRESHOLDS, TITLE_FONT_DEFAULT) == 18
    assert select_font_size(103, TITLE_FONT_THRESHOLDS, TITLE_FONT_DEFAULT) == 14
    assert select_font_size(200, TITLE_FONT_THRESHOLDS, TITLE_FONT_DEFAULT) == 12


def test_select_font_size_ignores_mapping_order():
    thresholds = {42: 46, 34: 55}
    assert select_font_size(30, thresholds, 39) == 55


def test_type_phrase_keeps_acronyms():
    assert format_type_phrase("Seminar") == "seminar"
    assert format_type_phrase("WORKSHOP IoT") == "workshop iot"
    assert format_type_phrase("SBC") == "SBC"
    assert format_type_phrase(None) == ""


def test_accented_names_are_measured_in_bytes():
    name = "Maria da Conceição Albuquerque Sá"
    assert len(name) == 33
    assert text_length(name) == 36
    assert select_font_size(text_length(name), NAME_FONT_THRESHOLDS, NAME_FONT_DEFAULT) == 46
