"""Input normalization and validation for values entering the core."""

import re
from decimal import Decimal, InvalidOperation

from email_validator import EmailNotValidError
from email_validator import validate_email as check_email_syntax

from sponsor_portal.domain.updates import UpdateType
from sponsor_portal.errors import ValidationError

_SPONSOR_CODE_RE = re.compile(r"^[A-Z0-9]+(?:-[A-Z0-9]+)*$")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

MAX_EMAIL_LENGTH = 254
MIN_SPONSOR_CODE_LENGTH = 3
MAX_SPONSOR_CODE_LENGTH = 32
MAX_TITLE_LENGTH = 200
MAX_CONTENT_LENGTH = 10_000
MAX_NAME_LENGTH = 200
MAX_REASON_LENGTH = 1_000
MIN_DONATION_CENTS = 100
MAX_DONATION_CENTS = 10_000_000


def sanitize_string(value: object) -> str:
    """Strip control characters and surrounding whitespace; non-strings become ''."""
    if not isinstance(value, str):
        return ""
    return _CONTROL_CHARS_RE.sub("", value).strip()


def validate_email(value: object) -> str:
    """Return a trimmed, lower-cased email or raise ValidationError."""
    email = sanitize_string(value).lower()
    if not email:
        raise ValidationError("Email is required")
    if len(email) > MAX_EMAIL_LENGTH:
        raise ValidationError("Please enter a valid email address")
    try:
        check_email_syntax(email, check_deliverability=False)
    except EmailNotValidError:
        raise ValidationError("Please enter a valid email address") from None
    return email


def validate_sponsor_code(value: object) -> str:
    """Return an upper-cased sponsor code like BAN-2025-104 or raise."""
    code = sanitize_string(value).upper()
    if not code:
        raise ValidationError("Sponsor code is required")
    if not (
        MIN_SPONSOR_CODE_LENGTH <= len(code) <= MAX_SPONSOR_CODE_LENGTH
        and _SPONSOR_CODE_RE.match(code)
    ):
        raise ValidationError("Please enter a valid sponsor code")
    return code


def validate_required_string(
    value: object, label: str, min_length: int = 1, max_length: int = MAX_NAME_LENGTH
) -> str:
    """Validate a free-text field against length bounds after sanitizing."""
    text = sanitize_string(value)
    if len(text) < min_length:
        raise ValidationError(f"{label} is required")
    if len(text) > max_length:
        raise ValidationError(f"{label} must be at most {max_length} characters")
    return text


def validate_update_title(value: object) -> str:
    return validate_required_string(value, "Title", max_length=MAX_TITLE_LENGTH)


def validate_update_content(value: object) -> str:
    return validate_required_string(value, "Content", max_length=MAX_CONTENT_LENGTH)


def validate_update_type(value: object) -> UpdateType:
    """Parse an update type; blank falls back to a progress report."""
    raw = sanitize_string(value)
    if not raw:
        return UpdateType.PROGRESS_REPORT
    try:
        return UpdateType(raw)
    except ValueError:
        raise ValidationError("Unknown update type") from None


def validate_donation_amount(value: object) -> int:
    """Validate a dollar amount and return it in cents."""
    if isinstance(value, bool) or value is None:
        raise ValidationError("Donation amount is required")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError("Donation amount must be a number") from None
    if not amount.is_finite():
        raise ValidationError("Donation amount must be a number")
    cents = int((amount * 100).to_integral_value())
    if cents < MIN_DONATION_CENTS:
        raise ValidationError("Minimum donation is $1")
    if cents > MAX_DONATION_CENTS:
        raise ValidationError("Maximum donation is $100,000")
    return cents
