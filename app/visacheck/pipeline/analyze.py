from __future__ import annotations

import datetime as dt
import logging
from typing import Callable, List, Optional, Sequence

import anyio

from ..schemas import (
    ApplicantInput,
    DocumentAnalysis,
    EligibilityDecision,
    EligibilityPolicy,
    RecommendedAction,
    VerificationResponse,
)
from .confidence import averaged_confidence, clamp_confidence
from .eligibility import evaluate_eligibility
from .extract import detect_document_type, extract_structured_fields
from .merge import integrate_mrz
from .mrz import decode_first_candidate, document_type_from_mrz
from .ocr import EMPTY_RESULT, OCRResult, run_ocr
from .validate import global_validations, validate_document

LOGGER = logging.getLogger(__name__)

OCRFunction = Callable[[bytes], OCRResult]


async def _ocr_document(ocr: OCRFunction, document: bytes) -> OCRResult:
    try:
        result = await anyio.to_thread.run_sync(ocr, document)
    except Exception as exc:  # noqa: BLE001
        LOGGER.warning("OCR call raised; continuing with empty text: %s", exc)
        return EMPTY_RESULT
    return OCRResult(text=result.text or "", confidence=clamp_confidence(result.confidence or 0))


async def analyze_document(
    document: bytes,
    index: int,
    applicant: ApplicantInput,
    ocr: OCRFunction,
    today: Optional[dt.date] = None,
) -> DocumentAnalysis:
    ocr_result = await _ocr_document(ocr, document)
    text = ocr_result.text

    mrz = decode_first_candidate(text)
    fields = integrate_mrz(extract_structured_fields(text), mrz)
    # Keywords first, then the MRZ document code.
    detected_type = detect_document_type(text) or document_type_from_mrz(mrz)

    analysis = DocumentAnalysis(
        index=index,
        detected_type=detected_type,
        raw_text=text,
        fields=fields,
        mrz=mrz,
    )
    validations = validate_document(analysis, applicant, today)
    overall = averaged_confidence(
        [
            ocr_result.confidence,
            *(field.confidence for field in fields.values()),
            *(validation.confidence for validation in validations),
        ]
    )
    LOGGER.info(
        "Document %d: type=%s mrz=%s fields=%d validations=%d confidence=%d",
        index,
        detected_type,
        mrz.format if mrz else None,
        len(fields),
        len(validations),
        overall,
    )
    return analysis.model_copy(update={"validations": validations, "overall_confidence": overall})


def recommended_actions(
    eligibility: EligibilityDecision, documents: Sequence[DocumentAnalysis]
) -> List[RecommendedAction]:
    actions: List[RecommendedAction] = []
    if eligibility.decision != "eligible":
        actions.append(RecommendedAction(action="Escalate for manual review", priority="high"))
    if any(validation.status == "fail" for doc in documents for validation in doc.validations):
        actions.append(
            RecommendedAction(
                action="Request resubmission of unclear or inconsistent documents",
                priority="medium",
            )
        )
    if not actions:
        actions.append(RecommendedAction(action="Proceed with visa application submission", priority="low"))
    return actions


async def verify_documents(
    documents: Sequence[bytes],
    applicant: ApplicantInput,
    policy: EligibilityPolicy,
    ocr: Optional[OCRFunction] = None,
    today: Optional[dt.date] = None,
) -> VerificationResponse:
    """Analyse every document in submission order and render the eligibility decision."""
    ocr_fn = ocr or run_ocr
    analyses: List[DocumentAnalysis] = []
    for index, document in enumerate(documents):
        analyses.append(await analyze_document(document, index, applicant, ocr_fn, today))

    validations = global_validations(analyses)
    eligibility = evaluate_eligibility(applicant, analyses, policy, today)
    overall = averaged_confidence(
        [
            *(doc.overall_confidence for doc in analyses),
            *(validation.confidence for validation in validations),
        ]
    )
    return VerificationResponse(
        summary=f"Processed {len(analyses)} document(s); eligibility decision: {eligibility.decision.upper()}.",
        overall_confidence=overall,
        applicant=applicant,
        documents=analyses,
        eligibility=eligibility,
        validations=validations,
        recommended_actions=recommended_actions(eligibility, analyses),
    )
