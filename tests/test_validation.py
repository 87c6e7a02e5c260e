import pytest

from presence_client.validation import (
    validate_email,
    validate_login_form,
    validate_password,
    validate_phone,
    validate_registration_form,
)


@pytest.mark.parametrize("email", ["ana@example.com", "first.last+tag@uni.edu.tr"])
def test_valid_emails(email):
    assert validate_email(email) == (True, "OK")


@pytest.mark.parametrize(
    "email,message",
    [
        ("", "This field is required."),
        ("ana @example.com", "Email addresses cannot contain spaces."),
        ("ana.example.com", "Enter a valid email."),
        ("ana@example..com", "Enter a valid email."),
        ("ana@localhost", "Enter a valid email."),
    ],
)
def test_invalid_emails(email, message):
    assert validate_email(email) == (False, message)


def test_password_minimum_length():
    assert validate_password("12345")[0] is False
    assert validate_password("123456") == (True, "OK")


def test_phone():
    assert validate_phone("+90 555 123 45 67")[0] is True
    assert validate_phone("call me")[0] is False


def test_login_form_collects_field_errors():
    assert validate_login_form("ana@example.com", "x") == {}
    assert set(validate_login_form("nope", "")) == {"email", "password"}


def test_registration_form():
    fields = dict(
        email="ana@example.com",
        name="Ana",
        surname="Lopez",
        phone="5551234567",
        password="secret1",
        confirmation="secret1",
    )
    assert validate_registration_form(**fields) == {}

    errors = validate_registration_form(**{**fields, "name": " ", "confirmation": "other"})
    assert errors == {"name": "This field is required.", "confirmation": "Passwords do not match."}

    errors = validate_registration_form(**{**fields, "password": "123", "confirmation": "456"})
    assert "password" in errors
    assert "confirmation" not in errors
