from decimal import Decimal

import pytest

from common.errors import ValidationError
from common.security.passwords import hash_password, verify_password
from common.security.validation import sanitize_input, clean_text, validate_email, validate_password, validate_price


def test_sanitize_escapes_html_and_trims():
    assert sanitize_input("  <a href=\"x\">Tom & 'Jerry'</a> ") == "&lt;a href=&quot;x&quot;&gt;Tom &amp; &#x27;Jerry&#x27;&lt;/a&gt;"
    assert sanitize_input(42) == 42


def test_length_is_measured_before_escaping():
    assert clean_text("&" * 100, "Title") == "&amp;" * 100
    with pytest.raises(ValidationError):
        clean_text("a" * 101, "Title")


def test_required_and_optional_fields():
    with pytest.raises(ValidationError, match="Title is required"):
        clean_text("   ", "Title")
    assert clean_text(None, "Bio", required=False) is None


@pytest.mark.parametrize("email", ["plain", "a@b", "a b@c.com", "@test.com", ""])
def test_invalid_emails(email):
    with pytest.raises(ValidationError):
        validate_email(email)


def test_valid_email_is_trimmed():
    assert validate_email("  coach@test.com ") == "coach@test.com"


@pytest.mark.parametrize("password, valid", [
    ("1234567", False),
    ("12345678", True),
    ("123456789012", True),
    ("1234567890123", False),
    ("  Passw0rd1  ", True),
])
def test_password_length_policy(password, valid):
    if valid:
        assert validate_password(password) == password.strip()
    else:
        with pytest.raises(ValidationError):
            validate_password(password)


def test_price_must_be_positive():
    assert validate_price("25") == Decimal("25.00")
    assert validate_price(19.999) == Decimal("20.00")
    for bad in (0, -1, "abc", "NaN"):
        with pytest.raises(ValidationError):
            validate_price(bad)


def test_password_hash_round_trip():
    hashed = hash_password("Passw0rd1")
    assert hashed != "Passw0rd1"
    assert verify_password("Passw0rd1", hashed)
    assert not verify_password("Passw0rd2", hashed)
