from __future__ import annotations

import math
from enum import Enum
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

FieldSource = Literal["text", "mrz"]
MrzFormat = Literal["TD1", "TD2", "TD3", "UNKNOWN"]
ValidationStatus = Literal["pass", "warn", "fail"]
DecisionValue = Literal["eligible", "ineligible", "review"]
Priority = Literal["low", "medium", "high"]


class FieldName(str, Enum):
    DOCUMENT_TYPE = "document_type"
    ISSUING_COUNTRY = "issuing_country"
    SURNAME = "surname"
    GIVEN_NAMES = "given_names"
    FULL_NAME = "full_name"
    PASSPORT_NUMBER = "passport_number"
    NATIONALITY = "nationality"
    DATE_OF_BIRTH = "date_of_birth"
    SEX = "sex"
    EXPIRY_DATE = "expiry_date"
    OPTIONAL_DATA = "optional_data"


class FieldValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    value: Optional[str] = None
    confidence: int = 0
    source: FieldSource = "text"

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: object) -> int:
        try:
            number = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 0
        if math.isnan(number):
            return 0
        return int(max(0, min(100, math.floor(number + 0.5))))


class MrzField(FieldValue):
    source: FieldSource = "mrz"
    raw: Optional[str] = None
    # None means the field carries no check digit.
    checksum_valid: Optional[bool] = None


class ParsedMrz(BaseModel):
    model_config = ConfigDict(frozen=True)

    format: MrzFormat
    raw_lines: List[str] = Field(default_factory=list)
    fields: Dict[str, MrzField] = Field(default_factory=dict)
    composite_valid: Optional[bool] = None


class ValidationResult(BaseModel):
    id: str
    status: ValidationStatus
    message: str
    confidence: int
    related_fields: Optional[List[str]] = None


class DocumentAnalysis(BaseModel):
    index: int
    detected_type: Optional[str] = None
    raw_text: str = ""
    fields: Dict[str, FieldValue] = Field(default_factory=dict)
    mrz: Optional[ParsedMrz] = None
    validations: List[ValidationResult] = Field(default_factory=list)
    overall_confidence: int = 0


class EligibilityDecision(BaseModel):
    decision: DecisionValue
    score: int
    reasons: List[str] = Field(default_factory=list)
    matched_rules: List[str] = Field(default_factory=list)


class RecommendedAction(BaseModel):
    action: str
    priority: Priority


class VisaTypeRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_age: int
    max_stay_days: int
    notes: Optional[str] = None


class EligibilityPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_passport_validity_months: int
    min_applicant_age: int
    max_applicant_age: int
    prohibited_nationalities: Tuple[str, ...] = ()
    require_document_types: Tuple[str, ...] = ()
    visa_type_rules: Dict[str, VisaTypeRule] = Field(default_factory=dict)


class VisaTypeRuleInput(BaseModel):
    min_age: Optional[int] = Field(default=None, ge=0, le=120)
    max_stay_days: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None


class PolicyInput(BaseModel):
    """Partial policy as supplied by a caller; every field may be omitted."""

    min_passport_validity_months: Optional[int] = Field(default=None, ge=0, le=120)
    min_applicant_age: Optional[int] = Field(default=None, ge=0, le=120)
    max_applicant_age: Optional[int] = Field(default=None, ge=0, le=120)
    prohibited_nationalities: Optional[List[str]] = None
    require_document_types: Optional[List[str]] = None
    visa_type_rules: Optional[Dict[str, Optional[VisaTypeRuleInput]]] = None


class ApplicantInput(BaseModel):
    full_name: str = Field(min_length=2)
    date_of_birth: str = Field(min_length=1)
    passport_number: str = Field(min_length=3)
    nationality: str = Field(min_length=2)
    visa_type: str = Field(min_length=2)


class VerificationResponse(BaseModel):
    summary: str
    overall_confidence: int
    applicant: ApplicantInput
    documents: List[DocumentAnalysis] = Field(default_factory=list)
    eligibility: EligibilityDecision
    validations: List[ValidationResult] = Field(default_factory=list)
    recommended_actions: List[RecommendedAction] = Field(default_factory=list)
