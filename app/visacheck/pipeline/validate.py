from __future__ import annotations

import datetime as dt
import logging
from typing import List, Optional, Sequence

from ..schemas import ApplicantInput, DocumentAnalysis, FieldName, ValidationResult, ValidationStatus
from .confidence import round_half_up
from .normalize import months_until, normalize_document_number, normalize_name, parse_flexible_date

LOGGER = logging.getLogger(__name__)


EXPIRY_WARNING_MONTHS = 6
NAME_MATCH_THRESHOLD = 80


def _result(
    result_id: str,
    status: ValidationStatus,
    message: str,
    confidence: int,
    related_fields: Optional[List[str]] = None,
) -> ValidationResult:
    return ValidationResult(
        id=result_id,
        status=status,
        message=message,
        confidence=confidence,
        related_fields=related_fields,
    )


def _field_value(document: DocumentAnalysis, key: FieldName) -> Optional[str]:
    field = document.fields.get(key.value)
    return field.value if field else None


def _name_tokens(value: str) -> List[str]:
    return (normalize_name(value) or "").lower().split()


def name_similarity(a: str, b: str) -> int:
    """Percentage of tokens in ``a`` that equal or prefix a token in ``b``."""
    a_tokens = _name_tokens(a)
    b_tokens = _name_tokens(b)
    if not a_tokens or not b_tokens:
        return 0
    matches = sum(1 for token in a_tokens if any(candidate.startswith(token) for candidate in b_tokens))
    return round_half_up(matches / max(len(a_tokens), len(b_tokens)) * 100)


def _check_expiry(document: DocumentAnalysis, today: Optional[dt.date]) -> Optional[ValidationResult]:
    expiry = _field_value(document, FieldName.EXPIRY_DATE)
    if not expiry:
        return None
    related = [FieldName.EXPIRY_DATE.value]
    months = months_until(parse_flexible_date(expiry, today), today)
    if months is None:
        return _result("expiry_parse", "warn", "Unable to parse expiry date", 40, related)
    if months < 0:
        return _result("expiry_past", "fail", "Document appears to be expired", 90, related)
    if months < EXPIRY_WARNING_MONTHS:
        return _result(
            "expiry_soon",
            "warn",
            f"Document expires in less than {EXPIRY_WARNING_MONTHS} months ({months} months)",
            70,
            related,
        )
    return _result("expiry_valid", "pass", "Expiry date is valid", 85, related)


def _check_date_of_birth(
    document: DocumentAnalysis, applicant: ApplicantInput, today: Optional[dt.date]
) -> Optional[ValidationResult]:
    applicant_dob = parse_flexible_date(applicant.date_of_birth, today)
    document_dob = parse_flexible_date(_field_value(document, FieldName.DATE_OF_BIRTH), today)
    if not applicant_dob or not document_dob:
        return None
    related = [FieldName.DATE_OF_BIRTH.value]
    if applicant_dob == document_dob:
        return _result("dob_match", "pass", "Applicant date of birth matches document", 90, related)
    return _result("dob_mismatch", "fail", "Applicant date of birth does not match document", 90, related)


def _check_name(document: DocumentAnalysis, applicant: ApplicantInput) -> Optional[ValidationResult]:
    full_name = _field_value(document, FieldName.FULL_NAME)
    if not full_name:
        return None
    similarity = name_similarity(full_name, applicant.full_name)
    related = [FieldName.FULL_NAME.value]
    if similarity > NAME_MATCH_THRESHOLD:
        return _result("name_match", "pass", "Applicant name aligns with document holder name", similarity, related)
    return _result("name_mismatch", "warn", "Applicant name differs from document holder name", similarity, related)


def _check_passport_number(document: DocumentAnalysis, applicant: ApplicantInput) -> Optional[ValidationResult]:
    number = _field_value(document, FieldName.PASSPORT_NUMBER)
    if not number or not applicant.passport_number:
        return None
    related = [FieldName.PASSPORT_NUMBER.value]
    if normalize_document_number(number) == normalize_document_number(applicant.passport_number):
        return _result("passport_match", "pass", "Passport number matches application", 95, related)
    return _result("passport_mismatch", "fail", "Passport number does not match application", 95, related)


def _check_mrz(document: DocumentAnalysis) -> List[ValidationResult]:
    mrz = document.mrz
    if mrz is None:
        return []
    results: List[ValidationResult] = []
    checked = [key for key, field in mrz.fields.items() if field.checksum_valid is not None]
    if checked:
        failures = [key for key in checked if mrz.fields[key].checksum_valid is False]
        if failures:
            results.append(
                _result("mrz_checksum_fail", "fail", "One or more MRZ checksum validations failed", 95, failures)
            )
        else:
            results.append(
                _result("mrz_checksum_pass", "pass", "MRZ check digits validated successfully", 95, checked)
            )
    if mrz.composite_valid is False:
        results.append(
            _result(
                "mrz_composite_mismatch",
                "warn",
                "MRZ composite check digit does not match",
                60,
                [FieldName.OPTIONAL_DATA.value],
            )
        )
    return results


def validate_document(
    document: DocumentAnalysis,
    applicant: ApplicantInput,
    today: Optional[dt.date] = None,
) -> List[ValidationResult]:
    """Run every per-document check whose inputs are present."""
    results: List[ValidationResult] = []
    for check in (
        _check_expiry(document, today),
        _check_date_of_birth(document, applicant, today),
        _check_name(document, applicant),
        _check_passport_number(document, applicant),
    ):
        if check is not None:
            results.append(check)
    results.extend(_check_mrz(document))
    LOGGER.debug(
        "Document %d validations: %s",
        document.index,
        ", ".join(f"{result.id}={result.status}" for result in results) or "none",
    )
    return results


def global_validations(documents: Sequence[DocumentAnalysis]) -> List[ValidationResult]:
    results: List[ValidationResult] = []
    if not documents:
        results.append(_result("documents_missing", "fail", "No readable documents supplied", 30))
    return results
