import re
from typing import Any, Optional


# Strict form used by quote, contact and auth forms
EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
# Looser form used by the shipment wizard
SIMPLE_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(
    r"^[+]?[(]?[0-9]{1,4}[)]?[-\s.]?[(]?[0-9]{1,4}[)]?[-\s.]?[0-9]{1,9}$"
)

MIN_PHONE_DIGITS = 10
MIN_PASSWORD_LENGTH = 8


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value) and bool(EMAIL_RE.match(value.strip()))


def is_valid_simple_email(value: Optional[str]) -> bool:
    return bool(value) and bool(SIMPLE_EMAIL_RE.match(value.strip()))


def is_valid_phone(value: Optional[str]) -> bool:
    """Phone pattern check used by the quote form (spaces are ignored)."""
    if not value:
        return False
    return bool(PHONE_RE.match(re.sub(r"\s", "", value)))


def count_digits(value: Optional[str]) -> int:
    return len(re.sub(r"\D", "", value or ""))


def password_problem(password: Optional[str]) -> Optional[str]:
    """Return the first unmet password rule, or None if the password is acceptable."""
    password = password or ""
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if not re.search(r"[A-Z]", password):
        return "Password must contain an uppercase letter"
    if not re.search(r"[a-z]", password):
        return "Password must contain a lowercase letter"
    if not re.search(r"[0-9]", password):
        return "Password must contain a number"
    return None


def sanitize_filename(name: str) -> str:
    cleaned = re.sub(r"[^a-zA-Z0-9._-]", "_", name or "file")
    return cleaned or "file"
