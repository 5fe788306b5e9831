"""Configuration loaded from environment variables."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env: try package dir then project root
_base = Path(__file__).resolve().parent
for _env_path in (_base / ".env", _base.parent / ".env"):
    if load_dotenv(_env_path):
        break
load_dotenv()  # also allow process env


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# LLM endpoint (OpenAI-compatible chat completions) – never hardcode keys
LLM_API_KEY: str = os.getenv("LLM_API_KEY") or os.getenv("MISTRAL_API_KEY", "")
LLM_BASE_URL: str = os.getenv("LLM_BASE_URL", "https://api.mistral.ai/v1")
MODEL_NAME: str = os.getenv("MODEL_NAME", "mistral-small-latest")
LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.1"))
LLM_TIMEOUT_SECONDS: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))

# Rate-limit (HTTP 429) retry policy
RATE_LIMIT_MAX_RETRIES: int = max(0, int(os.getenv("RATE_LIMIT_MAX_RETRIES", "4")))
RATE_LIMIT_BASE_DELAY_SECONDS: float = float(os.getenv("RATE_LIMIT_BASE_DELAY_SECONDS", "1.0"))
RATE_LIMIT_JITTER_SECONDS: float = float(os.getenv("RATE_LIMIT_JITTER_SECONDS", "1.0"))

# Concurrency
BATCH_CONCURRENCY: int = int(os.getenv("BATCH_CONCURRENCY", "5"))  # 0 = unbounded fan-out
DOCUMENT_TIMEOUT_SECONDS: float = float(os.getenv("DOCUMENT_TIMEOUT_SECONDS", "180"))  # 0 = no timeout

# Text extraction
MAX_CV_CHARS: int = int(os.getenv("MAX_CV_CHARS", "50000"))
OCR_PDF_RESOLUTION: int = int(os.getenv("OCR_PDF_RESOLUTION", "300"))
TESSERACT_CMD: str = os.getenv("TESSERACT_CMD", "")

# Storage
DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///cv_analyzer.db")
PERSIST_RESULTS: bool = _env_bool("PERSIST_RESULTS", True)

# HTTP API
API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT") or os.getenv("PORT", "3000"))
CORS_ALLOW_ORIGINS: list = [
    o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()
]
MAX_REQUEST_BYTES: int = int(os.getenv("MAX_REQUEST_BYTES", str(50 * 1024 * 1024)))

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# Recognized upload types (extensible: add a strategy list in text_extractor too)
SUPPORTED_FILE_TYPES: tuple = ("pdf", "docx", "png", "jpg", "jpeg")
