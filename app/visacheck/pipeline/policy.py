from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from ..schemas import EligibilityPolicy, PolicyInput, VisaTypeRule

LOGGER = logging.getLogger(__name__)


DEFAULT_MAX_STAY_DAYS = 90

DEFAULT_POLICY = EligibilityPolicy(
    min_passport_validity_months=6,
    min_applicant_age=18,
    max_applicant_age=75,
    prohibited_nationalities=(),
    require_document_types=("passport",),
    visa_type_rules={
        "tourist": VisaTypeRule(min_age=0, max_stay_days=90, notes="Standard tourist visa requirements"),
        "business": VisaTypeRule(min_age=21, max_stay_days=90, notes="Business visits require invitation letter"),
        "work": VisaTypeRule(min_age=21, max_stay_days=365, notes="Work visas require sponsorship documentation"),
    },
)


def sanitize_policy(partial: Union[PolicyInput, Mapping[str, Any], None]) -> EligibilityPolicy:
    """Fill a partial policy from the defaults.

    A non-empty ``visa_type_rules`` replaces the default rules wholesale; only
    the attributes inside each supplied rule fall back individually.
    """
    if partial is None:
        return DEFAULT_POLICY
    data = partial if isinstance(partial, PolicyInput) else PolicyInput.model_validate(partial)

    def pick(value, default):
        return default if value is None else value

    visa_type_rules = DEFAULT_POLICY.visa_type_rules
    if data.visa_type_rules:
        visa_type_rules = {}
        for name, rule in data.visa_type_rules.items():
            visa_type_rules[name.lower()] = VisaTypeRule(
                min_age=pick(rule.min_age if rule else None, DEFAULT_POLICY.min_applicant_age),
                max_stay_days=pick(rule.max_stay_days if rule else None, DEFAULT_MAX_STAY_DAYS),
                notes=rule.notes if rule else None,
            )

    return EligibilityPolicy(
        min_passport_validity_months=pick(
            data.min_passport_validity_months, DEFAULT_POLICY.min_passport_validity_months
        ),
        min_applicant_age=pick(data.min_applicant_age, DEFAULT_POLICY.min_applicant_age),
        max_applicant_age=pick(data.max_applicant_age, DEFAULT_POLICY.max_applicant_age),
        prohibited_nationalities=tuple(pick(data.prohibited_nationalities, ())),
        require_document_types=tuple(pick(data.require_document_types, DEFAULT_POLICY.require_document_types)),
        visa_type_rules=visa_type_rules,
    )


def policy_from_payload(payload: Optional[Mapping[str, Any]]) -> EligibilityPolicy:
    """Sanitize a caller-supplied policy, falling back to the defaults when it is invalid."""
    try:
        return sanitize_policy(payload)
    except ValidationError as exc:
        LOGGER.warning("Ignoring invalid policy payload (%d errors); using defaults", exc.error_count())
        return DEFAULT_POLICY
