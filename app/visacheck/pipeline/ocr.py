from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import pytesseract
from pytesseract import Output

from PIL import Image

from ..config import CONFIG
from .confidence import averaged_confidence
from .ingest import load_document_bytes

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class OCRResult:
    text: str
    confidence: int


EMPTY_RESULT = OCRResult(text="", confidence=0)


def _run_tesseract(image: Image.Image, lang: Optional[str]) -> Tuple[str, List[float]]:
    try:
        data = pytesseract.image_to_data(image, output_type=Output.DICT, lang=lang)
        text = pytesseract.image_to_string(image, lang=lang)
    except pytesseract.TesseractError:
        if lang:
            LOGGER.warning("OCR language %s failed; retrying default OCR.", lang)
            data = pytesseract.image_to_data(image, output_type=Output.DICT)
            text = pytesseract.image_to_string(image)
        else:
            raise
    confs: List[float] = []
    for i, token in enumerate(data.get("text", [])):
        if not token or not token.strip():
            continue
        try:
            conf = float(data.get("conf", [])[i])
        except (IndexError, TypeError, ValueError):
            continue
        # Tesseract reports -1 for non-word boxes.
        if conf >= 0:
            confs.append(conf)
    return text, confs


def run_ocr(document: bytes) -> OCRResult:
    """OCR an uploaded document; any failure degrades to empty text at zero confidence."""
    try:
        pages = load_document_bytes(document)
        texts: List[str] = []
        confs: List[float] = []
        for page in pages:
            text, page_confs = _run_tesseract(page, CONFIG.ocr.lang)
            texts.append(text)
            confs.extend(page_confs)
    except Exception as exc:  # noqa: BLE001
        LOGGER.warning("OCR failure: %s", exc)
        return EMPTY_RESULT
    result = OCRResult(text="\n".join(texts), confidence=averaged_confidence(confs))
    LOGGER.debug("OCR extracted %d words across %d page(s)", len(confs), len(pages))
    return result
