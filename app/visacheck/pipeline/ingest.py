from __future__ import annotations

import logging
from io import BytesIO
from typing import List

from pdf2image import convert_from_bytes
from PIL import Image, ImageOps

from ..config import CONFIG

LOGGER = logging.getLogger(__name__)


PDF_MAGIC = b"%PDF"


def load_document_bytes(data: bytes) -> List[Image.Image]:
    """Decode an uploaded PDF or image into a list of PIL pages."""
    if not data:
        raise ValueError("Empty document")
    if data[:4] == PDF_MAGIC:
        LOGGER.info("Rendering PDF upload (%d bytes) to images", len(data))
        return convert_from_bytes(data, dpi=CONFIG.ocr.pdf_dpi)
    image = Image.open(BytesIO(data))
    # Normalize orientation/mode so OCR sees consistent pixels.
    image = ImageOps.exif_transpose(image)
    if image.mode not in {"RGB", "L"}:
        image = image.convert("RGB")
    return [image]
