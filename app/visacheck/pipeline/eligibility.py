from __future__ import annotations

import datetime as dt
import logging
from enum import IntEnum
from typing import List, Optional, Sequence

from ..schemas import ApplicantInput, DocumentAnalysis, EligibilityDecision, EligibilityPolicy, FieldName
from .normalize import calculate_age, months_until, parse_flexible_date

LOGGER = logging.getLogger(__name__)


BASE_SCORE = 75
PASSPORT_VALIDITY_PENALTY = 25
AGE_BAND_PENALTY = 30
NATIONALITY_PENALTY = 40
VISA_MIN_AGE_PENALTY = 25
UNKNOWN_VISA_TYPE_PENALTY = 10
MISSING_DOCUMENTS_PENALTY = 25


class Decision(IntEnum):
    ELIGIBLE = 0
    REVIEW = 1
    INELIGIBLE = 2

    @property
    def label(self) -> str:
        return self.name.lower()


def escalate(current: Decision, proposed: Decision) -> Decision:
    """Severity only ever goes up within one evaluation."""
    return max(current, proposed)


def _primary_expiry_months(documents: Sequence[DocumentAnalysis], today: Optional[dt.date]) -> Optional[int]:
    if not documents:
        return None
    field = documents[0].fields.get(FieldName.EXPIRY_DATE.value)
    if field is None or not field.value:
        return None
    return months_until(parse_flexible_date(field.value, today), today)


def evaluate_eligibility(
    applicant: ApplicantInput,
    documents: Sequence[DocumentAnalysis],
    policy: EligibilityPolicy,
    today: Optional[dt.date] = None,
) -> EligibilityDecision:
    reasons: List[str] = []
    matched_rules: List[str] = []
    score = BASE_SCORE
    decision = Decision.ELIGIBLE

    months = _primary_expiry_months(documents, today)
    if months is not None and months < policy.min_passport_validity_months:
        reasons.append(
            f"Passport validity below required minimum of {policy.min_passport_validity_months} months"
        )
        score -= PASSPORT_VALIDITY_PENALTY
        decision = escalate(decision, Decision.INELIGIBLE)

    age = calculate_age(parse_flexible_date(applicant.date_of_birth, today), today)
    if age is not None:
        if age < policy.min_applicant_age:
            reasons.append(f"Applicant younger than required minimum age of {policy.min_applicant_age}")
            score -= AGE_BAND_PENALTY
            decision = escalate(decision, Decision.INELIGIBLE)
        elif age > policy.max_applicant_age:
            reasons.append(f"Applicant exceeds maximum age of {policy.max_applicant_age}")
            score -= AGE_BAND_PENALTY
            decision = escalate(decision, Decision.INELIGIBLE)
        else:
            matched_rules.append("age_band_ok")

    prohibited = {nationality.upper() for nationality in policy.prohibited_nationalities}
    if applicant.nationality.upper() in prohibited:
        reasons.append(f"Nationality {applicant.nationality} is not eligible")
        score -= NATIONALITY_PENALTY
        decision = escalate(decision, Decision.INELIGIBLE)
    else:
        matched_rules.append("nationality_allowed")

    visa_type = applicant.visa_type.lower()
    visa_rule = policy.visa_type_rules.get(visa_type)
    if visa_rule is not None:
        matched_rules.append(f"visa_rule_{visa_type}")
        if age is not None and age < visa_rule.min_age:
            reasons.append(
                f"Applicant does not meet minimum age {visa_rule.min_age} for visa type {applicant.visa_type}"
            )
            score -= VISA_MIN_AGE_PENALTY
            decision = escalate(decision, Decision.INELIGIBLE)
    else:
        reasons.append(f"No configured policy for visa type {applicant.visa_type}")
        score -= UNKNOWN_VISA_TYPE_PENALTY
        decision = escalate(decision, Decision.REVIEW)

    detected = {doc.detected_type.lower() for doc in documents if doc.detected_type}
    missing = [doc_type for doc_type in policy.require_document_types if doc_type.lower() not in detected]
    if missing:
        reasons.append(f"Missing required document types: {', '.join(missing)}")
        score -= MISSING_DOCUMENTS_PENALTY
        decision = escalate(decision, Decision.INELIGIBLE)
    else:
        matched_rules.append("required_documents_present")

    score = max(0, min(100, score))
    LOGGER.info("Eligibility decision %s (score %d, %d reasons)", decision.label, score, len(reasons))
    return EligibilityDecision(
        decision=decision.label,
        score=score,
        reasons=reasons,
        matched_rules=matched_rules,
    )
