from __future__ import annotations

import json
import logging
from typing import Dict, List, Optional

from fastapi import FastAPI, File, Form, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import CONFIG
from .pipeline.analyze import verify_documents
from .pipeline.ocr import run_ocr
from .pipeline.policy import DEFAULT_POLICY, policy_from_payload
from .schemas import ApplicantInput, EligibilityPolicy

logging.basicConfig(level=CONFIG.log_level, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
LOGGER = logging.getLogger("visacheck")

app = FastAPI(title="Visa Document Verifier")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/policy/default")
async def default_policy() -> Dict[str, object]:
    return DEFAULT_POLICY.model_dump()


def _error(message: str, status_code: int = 400, details: Optional[object] = None) -> JSONResponse:
    payload: Dict[str, object] = {"error": message}
    if details is not None:
        payload["details"] = details
    return JSONResponse(payload, status_code=status_code)


def _parse_policy(raw: Optional[str]) -> EligibilityPolicy:
    if not raw:
        return DEFAULT_POLICY
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        LOGGER.warning("Policy payload is not valid JSON; using defaults")
        return DEFAULT_POLICY
    if not isinstance(payload, dict):
        LOGGER.warning("Policy payload is not an object; using defaults")
        return DEFAULT_POLICY
    return policy_from_payload(payload)


@app.post("/verify")
async def verify(
    applicant: Optional[str] = Form(None),
    policy: Optional[str] = Form(None),
    documents: Optional[List[UploadFile]] = File(None),
):
    if not applicant:
        return _error("Missing applicant payload")
    try:
        applicant_input = ApplicantInput.model_validate(json.loads(applicant))
    except json.JSONDecodeError:
        return _error("Invalid applicant payload", details="applicant is not valid JSON")
    except ValidationError as exc:
        return _error("Invalid applicant payload", details=json.loads(exc.json(include_url=False)))

    eligibility_policy = _parse_policy(policy)

    if not documents:
        return _error("No documents provided for verification")

    buffers: List[bytes] = []
    limit = CONFIG.upload.max_upload_bytes
    for upload in documents:
        too_large = f"Document {upload.filename or len(buffers)} exceeds the upload size limit"
        # The multipart parser records the size; check it before pulling the file into memory.
        if limit and upload.size is not None and upload.size > limit:
            return _error(too_large)
        data = await upload.read()
        if limit and len(data) > limit:
            return _error(too_large)
        buffers.append(data)

    LOGGER.info("Verifying %d document(s) for visa type %s", len(buffers), applicant_input.visa_type)
    try:
        result = await verify_documents(buffers, applicant_input, eligibility_policy, ocr=run_ocr)
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Verification error")
        return _error("Internal processing error", status_code=500, details=str(exc))

    LOGGER.info(result.summary)
    return JSONResponse(result.model_dump())
