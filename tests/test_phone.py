"""Tests for phone normalization."""
import pytest

from remindertribu.services.phone import first_dialable, normalize_phone


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("347 123 4567", "+393471234567"),
        ("0039347 1234567", "+393471234567"),
        ("+1 555 0100", "+15550100"),
        ("+39 347-123-4567", "+393471234567"),
        ("(+39) 347.123.45.67", "+393471234567"),
        ("393471234567", "+393471234567"),
        ("347123456", "+39347123456"),
        ("+39+347", "+39347"),
        (3471234567, "+393471234567"),
    ],
)
def test_normalize_phone_accepts_known_shapes(raw, expected):
    assert normalize_phone(raw) == expected


@pytest.mark.parametrize(
    "raw",
    [
        "0712345",  # landline, no mobile or country prefix
        "06 1234 5678",
        "12345",
        "+",
        "00",
        "abc",
        "",
        None,
    ],
)
def test_normalize_phone_refuses_to_guess(raw):
    assert normalize_phone(raw) is None


@pytest.mark.parametrize(
    "raw",
    ["347 123 4567", "0039347 1234567", "+1 555 0100", "393471234567", "00 44 7700 900123"],
)
def test_normalize_phone_is_idempotent(raw):
    once = normalize_phone(raw)
    assert once is not None
    assert normalize_phone(once) == once


def test_normalize_phone_custom_country_code():
    assert normalize_phone("3471234567", country_code="41") == "+413471234567"


def test_first_dialable_uses_priority_order():
    data = {"phone": "3330000000", "whatsapp": "347-000-1111", "telefono": ""}
    assert first_dialable(data, ["whatsapp", "telefono", "phone"]) == ("whatsapp", "+393470001111")


def test_first_dialable_skips_empty_fields():
    data = {"whatsapp": "  ", "telefono": None, "phone": "3330000000"}
    assert first_dialable(data, ["whatsapp", "telefono", "phone"]) == ("phone", "+393330000000")


def test_first_dialable_does_not_fall_back_after_invalid_value():
    data = {"whatsapp": "0712345", "phone": "3330000000"}
    assert first_dialable(data, ["whatsapp", "phone"]) == ("whatsapp", None)


def test_first_dialable_without_any_value():
    assert first_dialable({}, ["whatsapp", "phone"]) == (None, None)
