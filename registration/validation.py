"""Field-level validation rules for the registration form.

Each validator returns ``None`` when the value is acceptable or a message that
can be shown next to the field. Only the first failing rule for a field is
reported.
"""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Callable, Dict, Mapping, Optional

from .models import FIELD_NAMES, RegistrationInput

NAME_MIN_LENGTH = 2
PASSWORD_MIN_LENGTH = 8
PHONE_MIN_DIGITS = 10
MINIMUM_AGE = 13
MAXIMUM_AGE = 120
PASSWORD_SPECIAL_CHARACTERS = "@$!%*?&"

_NAME_RE = re.compile(r"[A-Za-z\s]+")
_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_PHONE_RE = re.compile(r"\+?[0-9\s\-()]+")
_NON_DIGIT_RE = re.compile(r"[^0-9]")

Validator = Callable[[str, Mapping[str, str], date], Optional[str]]


def _validate_full_name(value: str, context: Mapping[str, str], today: date) -> Optional[str]:
    if not value.strip():
        return "Full name is required"
    if len(value.strip()) < NAME_MIN_LENGTH:
        return f"Name must be at least {NAME_MIN_LENGTH} characters"
    if not _NAME_RE.fullmatch(value):
        return "Name can only contain letters"
    return None


def _validate_email(value: str, context: Mapping[str, str], today: date) -> Optional[str]:
    if not value.strip():
        return "Email is required"
    if not _EMAIL_RE.fullmatch(value):
        return "Invalid email format"
    return None


def _validate_password(value: str, context: Mapping[str, str], today: date) -> Optional[str]:
    if not value:
        return "Password is required"
    if len(value) < PASSWORD_MIN_LENGTH:
        return f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
    if not re.search(r"[a-z]", value):
        return "Password must contain a lowercase letter"
    if not re.search(r"[A-Z]", value):
        return "Password must contain an uppercase letter"
    if not re.search(r"[0-9]", value):
        return "Password must contain a number"
    if not any(character in PASSWORD_SPECIAL_CHARACTERS for character in value):
        return "Password must contain a special character"
    return None


def _validate_confirm_password(
    value: str, context: Mapping[str, str], today: date
) -> Optional[str]:
    if not value:
        return "Please confirm your password"
    if value != context.get("password", ""):
        return "Passwords do not match"
    return None


def _validate_phone(value: str, context: Mapping[str, str], today: date) -> Optional[str]:
    if not value.strip():
        return "Phone number is required"
    if not _PHONE_RE.fullmatch(value):
        return "Invalid phone number format"
    if len(_NON_DIGIT_RE.sub("", value)) < PHONE_MIN_DIGITS:
        return f"Phone number must be at least {PHONE_MIN_DIGITS} digits"
    return None


def parse_birth_date(value: str) -> Optional[date]:
    """Parse an ISO 8601 date or date-time, returning ``None`` when malformed."""

    cleaned = value.strip()
    if not cleaned:
        return None
    try:
        return date.fromisoformat(cleaned)
    except ValueError:
        pass
    if cleaned.endswith(("Z", "z")):
        cleaned = cleaned[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(cleaned).date()
    except ValueError:
        return None


def calculate_age(birth_date: date, today: date) -> int:
    """Age in whole years as the difference of calendar years.

    Month and day are ignored, so someone born in December counts as a year
    older for most of the year.
    """

    return today.year - birth_date.year


def _validate_date_of_birth(
    value: str, context: Mapping[str, str], today: date
) -> Optional[str]:
    if not value:
        return "Date of birth is required"
    birth_date = parse_birth_date(value)
    if birth_date is None:
        return "Please enter a valid date"
    age = calculate_age(birth_date, today)
    if age < MINIMUM_AGE:
        return f"You must be at least {MINIMUM_AGE} years old"
    if age > MAXIMUM_AGE:
        return "Please enter a valid date"
    return None


_VALIDATORS: Dict[str, Validator] = {
    "fullName": _validate_full_name,
    "email": _validate_email,
    "password": _validate_password,
    "confirmPassword": _validate_confirm_password,
    "phone": _validate_phone,
    "dateOfBirth": _validate_date_of_birth,
}


def validate_field(
    field_name: str,
    value: str,
    context: Optional[Mapping[str, str]] = None,
    *,
    today: Optional[date] = None,
) -> Optional[str]:
    """Validate a single form field.

    ``context`` carries sibling values; ``confirmPassword`` reads ``password``
    from it. Unknown field names are always valid.
    """

    validator = _VALIDATORS.get(field_name)
    if validator is None:
        return None
    return validator(value or "", context or {}, today or date.today())


def validate_registration(
    data: RegistrationInput, *, today: Optional[date] = None
) -> Dict[str, str]:
    """Validate every field and return the failures keyed by field name."""

    current = today or date.today()
    context = {"password": data.password}
    errors: Dict[str, str] = {}
    for field_name in FIELD_NAMES:
        error = validate_field(field_name, data.get(field_name), context, today=current)
        if error:
            errors[field_name] = error
    return errors


__all__ = [
    "MAXIMUM_AGE",
    "MINIMUM_AGE",
    "PASSWORD_MIN_LENGTH",
    "PASSWORD_SPECIAL_CHARACTERS",
    "PHONE_MIN_DIGITS",
    "calculate_age",
    "parse_birth_date",
    "validate_field",
    "validate_registration",
]
