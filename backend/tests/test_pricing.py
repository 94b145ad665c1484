"""
Tests for minor-unit price arithmetic.
"""

import pytest

from comedy_club.core.exceptions import BookingValidationError
from comedy_club.services.pricing import compute_total, format_amount, parse_amount


def test_compute_total():
    assert compute_total(2000, 3) == 6000
    assert compute_total(0, 2) == 0


@pytest.mark.parametrize("unit_price,seats", [(-1, 1), (1000, 0)])
def test_compute_total_rejects_invalid(unit_price, seats):
    with pytest.raises(BookingValidationError):
        compute_total(unit_price, seats)


@pytest.mark.parametrize("minor,text", [(4200, "42.00"), (5, "0.05"), (0, "0.00"), (123456, "1234.56")])
def test_format_amount(minor, text):
    assert format_amount(minor) == text


@pytest.mark.parametrize("text,minor", [("42.00", 4200), ("42", 4200), (" 12.5 ", 1250), ("0.005", 1)])
def test_parse_amount(text, minor):
    assert parse_amount(text) == minor


@pytest.mark.parametrize("text", ["", "abc", "-1.00", "NaN", "Infinity"])
def test_parse_amount_rejects(text):
    with pytest.raises(BookingValidationError):
        parse_amount(text)
