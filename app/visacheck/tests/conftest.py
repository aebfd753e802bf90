import datetime as dt
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from visacheck.pipeline.ocr import OCRResult  # noqa: E402
from visacheck.schemas import ApplicantInput  # noqa: E402


TD3_SAMPLE = [
    "P<UTOERIKSSON<<ANNA<MARIA<<<<<<<<<<<<<<<<<<<",
    "L898902C<3UTO6908061F9406236ZE184226B<<<<<10",
]

TEXT_PASSPORT = "\n".join(
    [
        "REPUBLIC OF UTOPIA",
        "PASSPORT",
        "Surname: ERIKSSON",
        "Given Names: ANNA MARIA",
        "Passport No: L898902C",
        "Nationality: UTOPIAN",
        "Date of Birth: 12/08/1974",
        "Date of Expiry: 15/04/2045",
    ]
)


@pytest.fixture
def today() -> dt.date:
    return dt.date(2026, 10, 19)


@pytest.fixture
def applicant() -> ApplicantInput:
    return ApplicantInput(
        full_name="Anna Maria Eriksson",
        date_of_birth="1974-08-12",
        passport_number="L898902C",
        nationality="Utopian",
        visa_type="tourist",
    )


@pytest.fixture
def fake_ocr():
    """Build an OCR callable that returns canned text per document payload."""

    def factory(texts, confidence: int = 88):
        def ocr(document: bytes) -> OCRResult:
            return OCRResult(text=texts[document.decode()], confidence=confidence)

        return ocr

    return factory


@pytest.fixture
def td3_lines():
    return list(TD3_SAMPLE)


@pytest.fixture
def text_passport() -> str:
    return TEXT_PASSPORT
