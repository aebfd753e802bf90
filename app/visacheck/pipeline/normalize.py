from __future__ import annotations

import datetime as dt
import re
from typing import Optional

from dateutil.relativedelta import relativedelta

# Tried in order after the MRZ YYMMDD reading; first valid calendar date wins.
DATE_PATTERNS = [
    ("yyyy-MM-dd", "%Y-%m-%d"),
    ("dd-MM-yyyy", "%d-%m-%Y"),
    ("MM-dd-yyyy", "%m-%d-%Y"),
    ("dd/MM/yyyy", "%d/%m/%Y"),
    ("MM/dd/yyyy", "%m/%d/%Y"),
    ("dd MMM yyyy", "%d %b %Y"),
    ("d MMM yyyy", "%d %b %Y"),
    ("dd.MM.yyyy", "%d.%m.%Y"),
    ("yyyyMMdd", "%Y%m%d"),
    ("yyMMdd", "%y%m%d"),
]
COMPACT_LENGTHS = {"%Y%m%d": 8, "%y%m%d": 6}
MRZ_DATE_RE = re.compile(r"^[0-9]{6}$")


def _today(today: Optional[dt.date]) -> dt.date:
    return today or dt.date.today()


def coerce_century(two_digit_year: int, today: Optional[dt.date] = None) -> int:
    """Resolve a two-digit year within +/-50 years of the current year.

    Birth and expiry dates go through the same pivot, so a birth year such as
    ``69`` read in the 2020s resolves to 2069.
    """
    current_year = _today(today).year
    current_two_digit = current_year % 100
    century = current_year - current_two_digit
    if two_digit_year - current_two_digit > 50:
        return century - 100 + two_digit_year
    if current_two_digit - two_digit_year > 50:
        return century + 100 + two_digit_year
    return century + two_digit_year


def parse_flexible_date(value: Optional[str], today: Optional[dt.date] = None) -> Optional[str]:
    if not value:
        return None
    raw = value.strip()
    # strptime accepts any Unicode digit; dates are ASCII only.
    if not raw or not raw.isascii():
        return None

    if MRZ_DATE_RE.match(raw):
        year = coerce_century(int(raw[0:2]), today)
        try:
            return dt.date(year, int(raw[2:4]), int(raw[4:6])).isoformat()
        except ValueError:
            pass

    for _, fmt in DATE_PATTERNS:
        # Compact numeric forms must match their exact digit count.
        if fmt in COMPACT_LENGTHS and not (raw.isdigit() and len(raw) == COMPACT_LENGTHS[fmt]):
            continue
        try:
            return dt.datetime.strptime(raw, fmt).date().isoformat()
        except ValueError:
            continue
    return None


def _parse_iso(value: Optional[str]) -> Optional[dt.date]:
    if not value or not value.isascii():
        return None
    try:
        return dt.datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def months_until(value: Optional[str], today: Optional[dt.date] = None) -> Optional[int]:
    """Calendar-month difference between today and an ISO date (days ignored)."""
    target = _parse_iso(value)
    if target is None:
        return None
    now = _today(today)
    return (target.year - now.year) * 12 + (target.month - now.month)


def calculate_age(value: Optional[str], today: Optional[dt.date] = None) -> Optional[int]:
    born = _parse_iso(value)
    if born is None:
        return None
    return relativedelta(_today(today), born).years


def normalize_name(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    cleaned = re.sub(r"[^A-Za-z\s'-]", " ", value)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    if not cleaned:
        return None
    return re.sub(r"\b\w", lambda match: match.group(0).upper(), cleaned)


def normalize_document_number(value: Optional[str]) -> str:
    if not value:
        return ""
    return re.sub(r"[^A-Za-z0-9]", "", value)
