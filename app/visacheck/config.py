from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

BASE_DIR = Path(__file__).parent


def _load_dotenv() -> None:
    repo_root = Path(__file__).resolve().parents[2]
    candidates = [repo_root / ".env", Path.cwd() / ".env"]
    for env_path in candidates:
        if not env_path.exists():
            continue
        try:
            for line in env_path.read_text().splitlines():
                stripped = line.strip()
                if not stripped or stripped.startswith("#") or "=" not in stripped:
                    continue
                key, value = stripped.split("=", 1)
                key = key.strip()
                value = value.strip().strip('"').strip("'")
                if key and key not in os.environ:
                    os.environ[key] = value
        except OSError:
            continue
        break


_load_dotenv()


@dataclass(frozen=True)
class OCRConfig:
    lang: str = os.getenv("VISACHECK_OCR_LANG", "eng")
    pdf_dpi: int = int(os.getenv("VISACHECK_PDF_DPI", "300"))


@dataclass(frozen=True)
class UploadConfig:
    # Zero disables the limit.
    max_upload_bytes: int = int(os.getenv("VISACHECK_MAX_UPLOAD_BYTES", str(15 * 1024 * 1024)))


@dataclass(frozen=True)
class AppConfig:
    log_level: str = os.getenv("VISACHECK_LOG_LEVEL", "INFO").upper()
    ocr: OCRConfig = field(default_factory=OCRConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)


CONFIG = AppConfig()
