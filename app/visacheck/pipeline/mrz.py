from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..schemas import MrzField, MrzFormat, ParsedMrz

LOGGER = logging.getLogger(__name__)


WEIGHTS = (7, 3, 1)
MRZ_ALLOWED_RE = re.compile(r"^[A-Z0-9<]+$")
MIN_CANDIDATE_LENGTH = 25
ASCII_DIGITS = "0123456789"

# ICAO 9303 document code (first character) to the document types used elsewhere.
MRZ_DOCUMENT_TYPES = {
    "P": "passport",
    "V": "visa",
    "I": "national_id",
    "A": "national_id",
    "C": "national_id",
}


@dataclass(frozen=True)
class Span:
    line: int
    start: int
    end: Optional[int] = None

    def take(self, lines: Sequence[str]) -> str:
        return lines[self.line][self.start : self.end]


@dataclass(frozen=True)
class MrzLayout:
    line_count: int
    line_length: int
    spans: Dict[str, Tuple[Span, ...]]
    # Slices concatenated, in this order, for the composite check digit.
    composite_order: Tuple[str, ...]
    identity_confidence: int
    name_confidence: int
    sex_confidence: int
    optional_confidence: int
    checksum_fail_confidence: int
    checksum_pass_confidence: int = 95


TD3_LAYOUT = MrzLayout(
    line_count=2,
    line_length=44,
    spans={
        "document_type": (Span(0, 0, 2),),
        "issuing_country": (Span(0, 2, 5),),
        "name": (Span(0, 5),),
        "passport_number": (Span(1, 0, 9),),
        "passport_check": (Span(1, 9, 10),),
        "nationality": (Span(1, 10, 13),),
        "date_of_birth": (Span(1, 13, 19),),
        "birth_check": (Span(1, 19, 20),),
        "sex": (Span(1, 20, 21),),
        "expiry_date": (Span(1, 21, 27),),
        "expiry_check": (Span(1, 27, 28),),
        "optional_data": (Span(1, 28, 42),),
        "composite_check": (Span(1, 43, 44),),
    },
    composite_order=(
        "passport_number",
        "passport_check",
        "date_of_birth",
        "birth_check",
        "expiry_date",
        "expiry_check",
        "optional_data",
    ),
    identity_confidence=85,
    name_confidence=80,
    sex_confidence=75,
    optional_confidence=60,
    checksum_fail_confidence=70,
)

TD2_LAYOUT = MrzLayout(
    line_count=2,
    line_length=36,
    spans={
        **TD3_LAYOUT.spans,
        "optional_data": (Span(1, 28, 35),),
        "composite_check": (Span(1, 35, 36),),
    },
    composite_order=TD3_LAYOUT.composite_order,
    identity_confidence=80,
    name_confidence=75,
    sex_confidence=70,
    optional_confidence=55,
    checksum_fail_confidence=65,
)

TD1_LAYOUT = MrzLayout(
    line_count=3,
    line_length=30,
    spans={
        "document_type": (Span(0, 0, 2),),
        "issuing_country": (Span(0, 2, 5),),
        "name": (Span(2, 0),),
        "passport_number": (Span(0, 5, 14),),
        "passport_check": (Span(0, 14, 15),),
        "nationality": (Span(1, 5, 8),),
        "date_of_birth": (Span(1, 0, 6),),
        "birth_check": (Span(1, 6, 7),),
        "sex": (Span(1, 7, 8),),
        "expiry_date": (Span(1, 8, 14),),
        "expiry_check": (Span(1, 14, 15),),
        "optional_data": (Span(0, 15, 30), Span(1, 15, 30)),
        "composite_check": (Span(2, 29, 30),),
    },
    # TD1 places the optional data ahead of the dates.
    composite_order=(
        "passport_number",
        "passport_check",
        "optional_data",
        "date_of_birth",
        "birth_check",
        "expiry_date",
        "expiry_check",
    ),
    identity_confidence=80,
    name_confidence=75,
    sex_confidence=70,
    optional_confidence=55,
    checksum_fail_confidence=65,
)

MRZ_LAYOUTS: Dict[str, MrzLayout] = {
    "TD1": TD1_LAYOUT,
    "TD2": TD2_LAYOUT,
    "TD3": TD3_LAYOUT,
}

# Field -> slice holding its check digit.
CHECKED_FIELDS = {
    "passport_number": "passport_check",
    "date_of_birth": "birth_check",
    "expiry_date": "expiry_check",
}


def _char_value(char: str) -> int:
    if char == "<":
        return 0
    if char in ASCII_DIGITS:
        return int(char)
    if "A" <= char <= "Z":
        return ord(char) - 55
    return 0


def compute_checksum(data: str) -> int:
    total = 0
    for i, char in enumerate(data):
        total += _char_value(char) * WEIGHTS[i % len(WEIGHTS)]
    return total % 10


def verify_checksum(data: str, check_digit: str) -> bool:
    if len(check_digit) != 1 or check_digit not in ASCII_DIGITS:
        return False
    return compute_checksum(data) == int(check_digit)


def _normalize_line(raw: str) -> str:
    return re.sub(r"\s+", "", raw).upper()


def find_mrz_candidates(text: str) -> List[List[str]]:
    """Every run of 2 or 3 consecutive equal-length MRZ-looking lines, in line order."""
    lines = [
        line
        for line in (_normalize_line(raw) for raw in (text or "").splitlines())
        if len(line) > MIN_CANDIDATE_LENGTH and MRZ_ALLOWED_RE.match(line)
    ]
    candidates: List[List[str]] = []
    for i in range(len(lines)):
        two_line = lines[i : i + 2]
        if len(two_line) == 2 and len(two_line[0]) == len(two_line[1]):
            candidates.append(two_line)
        three_line = lines[i : i + 3]
        if len(three_line) == 3 and len({len(line) for line in three_line}) == 1:
            candidates.append(three_line)
    return candidates


def determine_format(lines: Sequence[str]) -> MrzFormat:
    lengths = {len(line) for line in lines}
    if len(lines) == 3 and lengths == {30}:
        return "TD1"
    if len(lines) == 2 and lengths == {36}:
        return "TD2"
    if len(lines) == 2 and lengths == {44}:
        return "TD3"
    return "UNKNOWN"


def _slice(lines: Sequence[str], layout: MrzLayout, key: str) -> str:
    return "".join(span.take(lines) for span in layout.spans[key])


def _scalar(raw: str) -> Optional[str]:
    return raw.replace("<", "") or None


def _name_part(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    return raw.replace("<", " ").strip() or None


def _decode(lines: Sequence[str], fmt: MrzFormat, layout: MrzLayout) -> ParsedMrz:
    raw = {key: _slice(lines, layout, key) for key in layout.spans}

    name_parts = raw["name"].split("<<")
    surname_raw = name_parts[0]
    given_raw = name_parts[1] if len(name_parts) > 1 else None

    fields: Dict[str, MrzField] = {}

    def add(key: str, value: Optional[str], confidence: int, raw_value: Optional[str], checksum_valid=None) -> None:
        fields[key] = MrzField(
            label=key,
            value=value,
            confidence=confidence,
            raw=raw_value,
            checksum_valid=checksum_valid,
        )

    add("document_type", _scalar(raw["document_type"]), layout.identity_confidence, raw["document_type"])
    add("issuing_country", _scalar(raw["issuing_country"]), layout.identity_confidence, raw["issuing_country"])
    add("surname", _name_part(surname_raw), layout.name_confidence, surname_raw)
    add("given_names", _name_part(given_raw), layout.name_confidence, given_raw)

    for key in ("passport_number", "nationality", "date_of_birth", "sex", "expiry_date"):
        if key in CHECKED_FIELDS:
            valid = verify_checksum(raw[key], raw[CHECKED_FIELDS[key]])
            confidence = layout.checksum_pass_confidence if valid else layout.checksum_fail_confidence
            add(key, _scalar(raw[key]), confidence, raw[key], valid)
        elif key == "sex":
            add(key, None if raw[key] == "<" else raw[key] or None, layout.sex_confidence, raw[key])
        else:
            add(key, _scalar(raw[key]), layout.identity_confidence, raw[key])

    add("optional_data", _scalar(raw["optional_data"]), layout.optional_confidence, raw["optional_data"])

    composite = "".join(raw[key] for key in layout.composite_order)
    composite_valid = verify_checksum(composite, raw["composite_check"])
    return ParsedMrz(format=fmt, raw_lines=list(lines), fields=fields, composite_valid=composite_valid)


def parse_mrz(lines: Sequence[str]) -> Optional[ParsedMrz]:
    """Decode one candidate line group; None when there is nothing usable."""
    if not lines:
        return None
    fmt = determine_format(lines)
    if fmt == "UNKNOWN":
        return ParsedMrz(format=fmt, raw_lines=list(lines))
    try:
        return _decode(lines, fmt, MRZ_LAYOUTS[fmt])
    except Exception as exc:  # noqa: BLE001
        LOGGER.warning("MRZ parsing failed for %s candidate: %s", fmt, exc)
        return None


def decode_first_candidate(text: str) -> Optional[ParsedMrz]:
    # Earliest candidate in document order wins, even if a later one checks out better.
    candidates = find_mrz_candidates(text)
    if not candidates:
        return None
    if len(candidates) > 1:
        LOGGER.debug("Found %d MRZ candidates; decoding the first", len(candidates))
    return parse_mrz(candidates[0])


def document_type_from_mrz(mrz: Optional[ParsedMrz]) -> Optional[str]:
    if mrz is None:
        return None
    field = mrz.fields.get("document_type")
    if field is None or not field.value:
        return None
    return MRZ_DOCUMENT_TYPES.get(field.value[0], field.value)
