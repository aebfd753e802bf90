from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from ..schemas import FieldName
from .confidence import FieldMap, round_half_up, set_field
from .normalize import normalize_document_number, normalize_name, parse_flexible_date

LOGGER = logging.getLogger(__name__)


LABELLED_CONFIDENCE = {
    FieldName.PASSPORT_NUMBER: 65,
    FieldName.NATIONALITY: 60,
    FieldName.DATE_OF_BIRTH: 60,
    FieldName.EXPIRY_DATE: 60,
    FieldName.SURNAME: 55,
    FieldName.GIVEN_NAMES: 55,
}
GENERIC_CONFIDENCE = 40

# Labelled values are read from the label's own line.
DATE_VALUE = (
    r"([0-9]{4}[-/.][0-9]{1,2}[-/.][0-9]{1,2}"
    r"|[0-9]{1,2}[ \t]+[A-Za-z]{3}[ \t]+[0-9]{4}"
    r"|[0-9]{2}[^\w\n]?[0-9]{2}[^\w\n]?[0-9]{2,4})"
)
LETTERS_VALUE = r"([A-Z][A-Z \t]*)"
SEPARATOR = r"[ \t]*[:\-]?[ \t]*"

PASSPORT_NUMBER_RE = re.compile(
    r"(?:Passport|Document)[ \t]*(?:No\.?|Number)?" + SEPARATOR + r"((?=[A-Z0-9]*[0-9])[A-Z0-9]{5,})",
    re.IGNORECASE,
)
NATIONALITY_RE = re.compile(r"Nationality" + SEPARATOR + LETTERS_VALUE, re.IGNORECASE)
DATE_OF_BIRTH_RES = (
    re.compile(r"Date[ \t]+of[ \t]+Birth" + SEPARATOR + DATE_VALUE, re.IGNORECASE),
    re.compile(r"\bDOB" + SEPARATOR + DATE_VALUE, re.IGNORECASE),
)
EXPIRY_DATE_RES = (
    re.compile(r"Date[ \t]+of[ \t]+Expiry" + SEPARATOR + DATE_VALUE, re.IGNORECASE),
    re.compile(r"Expiry[ \t]*Date" + SEPARATOR + DATE_VALUE, re.IGNORECASE),
)
SURNAME_RE = re.compile(r"Surname" + SEPARATOR + LETTERS_VALUE, re.IGNORECASE)
GIVEN_NAMES_RE = re.compile(r"Given[ \t]+Names?" + SEPARATOR + LETTERS_VALUE, re.IGNORECASE)
KEY_VALUE_RE = re.compile(r"^([A-Za-z\s]{3,})[:\-\s]+([A-Za-z0-9\s'/.<>-]{3,})$")
# Generic keys never stand in for the labelled fields.
CANONICAL_KEYS = frozenset(name.value for name in FieldName)

# First match wins.
DOCUMENT_TYPE_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("passport", ("PASSPORT",)),
    ("driving_licence", ("DRIVING LICENCE", "DRIVER")),
    ("national_id", ("IDENTITY CARD", "NATIONAL ID")),
    ("visa", ("VISA",)),
    ("permit", ("PERMIT",)),
]


def detect_document_type(text: str) -> Optional[str]:
    upper = (text or "").upper()
    for doc_type, keywords in DOCUMENT_TYPE_KEYWORDS:
        if any(keyword in upper for keyword in keywords):
            return doc_type
    return None


def _first_match(patterns, text: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def _set_date(fields: FieldMap, key: FieldName, patterns, joined: str) -> None:
    raw = _first_match(patterns, joined)
    if not raw:
        return
    iso = parse_flexible_date(raw)
    if iso:
        set_field(fields, key, iso, LABELLED_CONFIDENCE[key], "text")
    else:
        LOGGER.debug("Ignoring unparsable %s value %r", key.value, raw)


def extract_structured_fields(text: str) -> FieldMap:
    """Pull identity fields out of free-form OCR text.

    Labelled matches land in the 55-65 confidence band and generic
    ``label: value`` lines at 40, both below anything the MRZ decoder emits.
    """
    fields: FieldMap = {}
    lines = [line.strip() for line in (text or "").splitlines() if line.strip()]
    joined = "\n".join(lines)

    passport = PASSPORT_NUMBER_RE.search(joined)
    if passport:
        set_field(
            fields,
            FieldName.PASSPORT_NUMBER,
            normalize_document_number(passport.group(1)),
            LABELLED_CONFIDENCE[FieldName.PASSPORT_NUMBER],
            "text",
        )

    nationality = NATIONALITY_RE.search(joined)
    if nationality:
        set_field(
            fields,
            FieldName.NATIONALITY,
            normalize_name(nationality.group(1)),
            LABELLED_CONFIDENCE[FieldName.NATIONALITY],
            "text",
        )

    _set_date(fields, FieldName.DATE_OF_BIRTH, DATE_OF_BIRTH_RES, joined)
    _set_date(fields, FieldName.EXPIRY_DATE, EXPIRY_DATE_RES, joined)

    for key, pattern in ((FieldName.SURNAME, SURNAME_RE), (FieldName.GIVEN_NAMES, GIVEN_NAMES_RE)):
        match = pattern.search(joined)
        if match:
            set_field(fields, key, normalize_name(match.group(1)), LABELLED_CONFIDENCE[key], "text")

    for line in lines:
        match = KEY_VALUE_RE.match(line)
        if not match:
            continue
        key = re.sub(r"\s+", "_", match.group(1).strip().lower())
        if key in CANONICAL_KEYS:
            continue
        set_field(fields, key, match.group(2).strip(), GENERIC_CONFIDENCE, "text")

    surname = fields.get(FieldName.SURNAME.value)
    given = fields.get(FieldName.GIVEN_NAMES.value)
    if surname and given:
        set_field(
            fields,
            FieldName.FULL_NAME,
            normalize_name(f"{surname.value} {given.value}"),
            round_half_up((surname.confidence + given.confidence) / 2),
            "text",
        )

    LOGGER.debug("Text extraction produced %d fields", len(fields))
    return fields
