"""
Input policy shared by every endpoint that stores free text.

Values are trimmed, length-checked on the trimmed raw text and then
HTML-escaped, so what reaches the database is always the escaped form.
"""
import html
import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Any

from common.config.settings import MAX_FIELD_LENGTH, PASSWORD_MIN_LENGTH, PASSWORD_MAX_LENGTH
from common.errors import ValidationError

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def sanitize_input(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    return html.escape(value.strip(), quote=True)


def validate_field_length(value: Optional[str], field_name: str, max_length: int = MAX_FIELD_LENGTH):
    if value is None:
        return
    if len(value.strip()) > max_length:
        raise ValidationError(f"{field_name} must not exceed {max_length} characters")


def clean_text(value: Optional[str], field_name: str, required: bool = True, max_length: int = MAX_FIELD_LENGTH) -> Optional[str]:
    """Trim, check and escape a free-text field. Returns None for an absent optional field."""
    if value is None or not value.strip():
        if required:
            raise ValidationError(f"{field_name} is required")
        return None
    validate_field_length(value, field_name, max_length)
    return sanitize_input(value)


def validate_email(email: Optional[str]) -> str:
    if not email or not email.strip():
        raise ValidationError("Email is required")
    trimmed = email.strip()
    if len(trimmed) > MAX_FIELD_LENGTH:
        raise ValidationError(f"Email must not exceed {MAX_FIELD_LENGTH} characters")
    if not EMAIL_PATTERN.match(trimmed):
        raise ValidationError("Invalid email format")
    return sanitize_input(trimmed)


def validate_password(password: Optional[str]) -> str:
    # Length is checked after trimming
    if not password:
        raise ValidationError("Password is required")
    trimmed = password.strip()
    if len(trimmed) < PASSWORD_MIN_LENGTH or len(trimmed) > PASSWORD_MAX_LENGTH:
        raise ValidationError(f"Password must be {PASSWORD_MIN_LENGTH}–{PASSWORD_MAX_LENGTH} characters long")
    return trimmed


def validate_price(price: Any, field_name: str = "Price") -> Decimal:
    try:
        value = Decimal(str(price))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not value.is_finite() or value <= 0:
        raise ValidationError(f"{field_name} must be greater than zero")
    return value.quantize(Decimal("0.01"))
