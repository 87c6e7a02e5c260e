"""
src/presence_client/validation.py
Validation helpers for login and registration input.

Each validator returns ``(is_valid, message)`` so the caller can show the
message next to the offending field.
"""

import re
from typing import Dict, Tuple

MIN_PASSWORD_LENGTH = 6

_EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
_PHONE_PATTERN = re.compile(r"^\+?[0-9 ()-]{6,20}$")


def validate_email(email: str) -> Tuple[bool, str]:
    """
    Validate email address format with detailed feedback.

    Args:
        email: Email address to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not email or not email.strip():
        return False, "This field is required."

    email = email.strip()

    if " " in email:
        return False, "Email addresses cannot contain spaces."

    if email.count("@") != 1:
        return False, "Enter a valid email."

    local, domain = email.split("@", 1)
    if not local or not domain:
        return False, "Enter a valid email."

    if len(local) > 64 or len(domain) > 255:
        return False, "Email address is too long."

    if domain.startswith(".") or domain.endswith(".") or ".." in domain:
        return False, "Enter a valid email."

    if not _EMAIL_PATTERN.match(email):
        return False, "Enter a valid email."

    return True, "OK"


def validate_password(password: str) -> Tuple[bool, str]:
    if not password:
        return False, "This field is required."
    if len(password) < MIN_PASSWORD_LENGTH:
        return False, f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
    return True, "OK"


def validate_password_confirmation(password: str, confirmation: str) -> Tuple[bool, str]:
    if password != confirmation:
        return False, "Passwords do not match."
    return True, "OK"


def validate_phone(phone: str) -> Tuple[bool, str]:
    if not phone or not phone.strip():
        return False, "This field is required."
    if not _PHONE_PATTERN.match(phone.strip()):
        return False, "Enter a valid phone number."
    return True, "OK"


def validate_login_form(email: str, password: str) -> Dict[str, str]:
    """Return a mapping of field name to error message; empty when valid."""
    errors: Dict[str, str] = {}
    ok, message = validate_email(email)
    if not ok:
        errors["email"] = message
    if not password:
        errors["password"] = "This field is required."
    return errors


def validate_registration_form(
    *,
    email: str,
    name: str,
    surname: str,
    phone: str,
    password: str,
    confirmation: str,
) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for field, value in (("name", name), ("surname", surname)):
        if not value or not value.strip():
            errors[field] = "This field is required."
    checks = {
        "email": validate_email(email),
        "phone": validate_phone(phone),
        "password": validate_password(password),
    }
    for field, (ok, message) in checks.items():
        if not ok:
            errors[field] = message
    if "password" not in errors:
        ok, message = validate_password_confirmation(password, confirmation)
        if not ok:
            errors["confirmation"] = message
    return errors
