"""
Normalizers that turn raw field encodings into comparable canonical forms.

Every function here is total: unparsable input degrades to a defined
fallback instead of raising, so a bad value shows up as a difference.
"""

from datetime import date, datetime
from typing import Any, Optional
import re

_ISO_DATE = re.compile(r"^(\d{4})[-/](\d{1,2})[-/](\d{1,2})(?:[T ].*)?$")
_DMY_DATE = re.compile(r"^(\d{1,2})[./-](\d{1,2})[./-](\d{4}|\d{2})$")
_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_STRICT_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_COUNTRY_PREFIX = re.compile(r"^[A-Za-z]{2}(?=\s*\d)")
_WHITESPACE = re.compile(r"\s+")


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a date from an ISO-like or day/month/year string.

    Day/month/year dates may use a two-digit year, taken as 2000 + YY.

    Returns None when the value is empty or not a valid calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None:
        return None

    text = str(value).strip()
    if not text:
        return None

    match = _ISO_DATE.match(text)
    if match:
        year, month, day = match.groups()
    else:
        match = _DMY_DATE.match(text)
        if not match:
            return None
        day, month, year = match.groups()
        if len(year) == 2:
            year = f"20{year}"

    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return None


def normalize_date(value: Any) -> str:
    """Return ``YYYY-MM-DD`` or, when unparsable, the trimmed original text."""
    parsed = parse_date(value)
    if parsed is not None:
        return parsed.isoformat()
    if value is None:
        return ""
    return str(value).strip()


def normalize_number(value: Any) -> float:
    """
    Parse a number written with either a decimal point or a decimal comma.

    Only the leading numeric literal is read ("100,50 RON" -> 100.5);
    anything unparsable becomes 0.0.
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)

    cleaned = str(value).strip().replace(",", ".", 1)
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return 0.0
    try:
        return float(match.group(0))
    except ValueError:
        return 0.0


def parse_strict_number(value: Any) -> Optional[float]:
    """Parse a value only if the whole (trimmed) text is a number."""
    if value is None:
        return None
    cleaned = str(value).strip().replace(",", ".", 1)
    if not _STRICT_NUMBER.match(cleaned):
        return None
    return float(cleaned)


def numbers_equal(left: Any, right: Any, tolerance: float = 0.01) -> bool:
    return abs(normalize_number(left) - normalize_number(right)) < tolerance


def strip_country_prefix(tax_id: Any) -> str:
    """Drop a two-letter country prefix in front of tax id digits (RO123 -> 123)."""
    if tax_id is None:
        return ""
    return _COUNTRY_PREFIX.sub("", str(tax_id).strip()).strip()


def normalize_tax_id(tax_id: Any) -> str:
    if tax_id is None:
        return ""
    return _WHITESPACE.sub("", str(tax_id)).upper()


def normalize_company_name(name: Any) -> str:
    if name is None:
        return ""
    text = str(name).lower().replace(".", "")
    return _WHITESPACE.sub(" ", text).strip()


def normalize_invoice_number(number: Any) -> str:
    if number is None:
        return ""
    return _WHITESPACE.sub("", str(number)).upper()


def normalize_text(value: Any) -> str:
    """Trim, lowercase and collapse whitespace."""
    if value is None:
        return ""
    return _WHITESPACE.sub(" ", str(value)).strip().lower()
