import pytest

from sitiolib.textutils import (
    norm_text,
    to_title_case,
    format_number,
    format_percentage,
    format_currency,
    format_currency_compact,
    truncate_text,
)


def test_norm_text():
    assert norm_text("  Sto. Niño  ") == "sto. nino"
    assert norm_text(None) == ""
    assert norm_text("Purok #3") == "purok 3"


@pytest.mark.parametrize("raw, expected", [
    ("the lord of the rings", "The Lord of the Rings"),
    ("o'neill street", "O'Neill Street"),
    ("mid-year review", "Mid Year Review"),
    ("water_tank count", "Water_Tank Count"),
    ("", ""),
])
def test_title_case(raw, expected):
    assert to_title_case(raw) == expected


def test_title_case_extra_small_words():
    assert to_title_case("sitio de la paz", small_words=["de", "la"]) == "Sitio de la Paz"


def test_number_formats():
    assert format_number(1234) == "1,234"
    assert format_number(1.5) == "1.5"
    assert format_number(None) == "-"
    assert format_percentage(12.346) == "12.35%"
    assert format_percentage(12.346, 1) == "12.3%"
    assert format_currency(1500) == "₱1,500"


@pytest.mark.parametrize("value, expected", [
    (950, "₱950"),
    (2500, "₱2.5K"),
    (1_500_000, "₱1.5M"),
    (3_200_000_000, "₱3.2B"),
    (-2500, "-₱2.5K"),
])
def test_currency_compact(value, expected):
    assert format_currency_compact(value) == expected


def test_truncate():
    assert truncate_text("abcdef", 3) == "abc..."
    assert truncate_text("abc", 3) == "abc"
