from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Union

from dateutil import parser as date_parser


CENT = Decimal("0.01")


def to_decimal(value: Any) -> Optional[Decimal]:
    """Parse a user or database value into a Decimal, None if not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    try:
        text = str(value).strip()
        if not text:
            return None
        result = Decimal(text)
    except (ArithmeticError, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def to_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def money(value: Any) -> float:
    """Decimal/str/number -> float rounded to cents, for JSON responses and rows."""
    amount = to_decimal(value) or Decimal("0")
    return float(to_cents(amount))


def format_currency(value: Any) -> str:
    amount = to_decimal(value) or Decimal("0")
    return f"${to_cents(amount):,.2f}"


def format_status(status: Optional[str]) -> str:
    """'out_for_delivery' -> 'Out For Delivery'."""
    if not status:
        return "Unknown"
    return " ".join(word.capitalize() for word in status.replace("_", " ").split())


def parse_datetime(value: Union[str, datetime, date, None]) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        try:
            dt = date_parser.isoparse(str(value))
        except (ValueError, OverflowError):
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_date(value: Union[str, datetime, date, None]) -> str:
    """'2026-01-05T10:00:00Z' -> 'Jan 5, 2026'."""
    dt = parse_datetime(value)
    if dt is None:
        return "N/A"
    return f"{dt.strftime('%b')} {dt.day}, {dt.year}"


def format_datetime(value: Union[str, datetime, date, None]) -> str:
    dt = parse_datetime(value)
    if dt is None:
        return "N/A"
    return f"{format_date(dt)} {dt.strftime('%I:%M %p')}"


def format_relative_time(
    value: Union[str, datetime, None], now: Optional[datetime] = None
) -> str:
    dt = parse_datetime(value)
    if dt is None:
        return "N/A"
    now = now or datetime.now(timezone.utc)
    seconds = (now - dt).total_seconds()
    if seconds < 60:
        return "Just now"
    minutes = int(seconds // 60)
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    days = hours // 24
    if days < 7:
        return f"{days}d ago"
    return format_date(dt)


def format_file_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def short_id(value: Optional[str], length: int = 8) -> str:
    """First characters of a uuid, uppercased (invoice and ticket numbers)."""
    return (value or "")[:length].upper()
