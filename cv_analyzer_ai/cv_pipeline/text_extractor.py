"""Extract raw text from uploaded CV files (PDF, DOCX, images). In-memory only."""

import asyncio
import re
import unicodedata
from io import BytesIO
from typing import Callable, Dict, List, Optional, Tuple

import pdfplumber
import pytesseract
from docx import Document
from PIL import Image

from config import MAX_CV_CHARS, OCR_PDF_RESOLUTION, TESSERACT_CMD
from cv_pipeline.errors import ExtractionFailed, UnsupportedFileType
from utils.helpers import normalize_file_type
from utils.logger import get_logger

logger = get_logger(__name__)

if TESSERACT_CMD:
    pytesseract.pytesseract.tesseract_cmd = TESSERACT_CMD

# (name, extractor) pairs; each extractor takes raw bytes and returns text
Strategy = Tuple[str, Callable[[bytes], str]]


def _normalize_unicode(text: str) -> str:
    """Normalize unicode (NFC) and replace problematic chars."""
    if not text:
        return ""
    return unicodedata.normalize("NFC", text)


def clean_cv_text(text: str, max_chars: int = MAX_CV_CHARS) -> str:
    """Remove excessive whitespace and normalize unicode for CV content."""
    if not text or not text.strip():
        return ""
    t = _normalize_unicode(text)
    t = re.sub(r"[ \t]+", " ", t)
    t = re.sub(r"\n\s*\n\s*\n", "\n\n", t)
    t = t.strip()
    if len(t) > max_chars:
        t = t[:max_chars] + "\n\n[Content truncated.]"
    return t


def _extract_pdf_text_layer(data: bytes) -> str:
    """Extract the embedded text layer of a PDF using pdfplumber."""
    with pdfplumber.open(BytesIO(data)) as pdf:
        parts = []
        for page in pdf.pages:
            ptext = page.extract_text()
            if ptext:
                parts.append(ptext)
        return "\n\n".join(parts)


def _extract_pdf_ocr(data: bytes) -> str:
    """Render each PDF page to an image and OCR it (scanned CVs have no text layer)."""
    with pdfplumber.open(BytesIO(data)) as pdf:
        parts = []
        for page in pdf.pages:
            image = page.to_image(resolution=OCR_PDF_RESOLUTION).original
            ptext = pytesseract.image_to_string(image)
            if ptext and ptext.strip():
                parts.append(ptext)
        return "\n\n".join(parts)


def _extract_docx(data: bytes) -> str:
    """Extract paragraphs and table cells from a DOCX using python-docx."""
    doc = Document(BytesIO(data))
    parts = [p.text for p in doc.paragraphs if p.text.strip()]
    for table in doc.tables:
        for row in table.rows:
            cells = [c.text.strip() for c in row.cells if c.text.strip()]
            if cells:
                parts.append(" | ".join(dict.fromkeys(cells)))
    return "\n\n".join(parts)


def _extract_image(data: bytes) -> str:
    """OCR an image (PNG/JPEG) with tesseract."""
    with Image.open(BytesIO(data)) as image:
        return pytesseract.image_to_string(image)


PDF_STRATEGIES: List[Strategy] = [
    ("pdfplumber", _extract_pdf_text_layer),
    ("pdf-ocr", _extract_pdf_ocr),
]
DOCX_STRATEGIES: List[Strategy] = [("python-docx", _extract_docx)]
IMAGE_STRATEGIES: List[Strategy] = [("tesseract", _extract_image)]

EXTRACTION_STRATEGIES: Dict[str, List[Strategy]] = {
    "pdf": PDF_STRATEGIES,
    "docx": DOCX_STRATEGIES,
    "png": IMAGE_STRATEGIES,
    "jpg": IMAGE_STRATEGIES,
    "jpeg": IMAGE_STRATEGIES,
}

# File types whose total failure degrades to empty text instead of raising
DEGRADE_TO_EMPTY: frozenset = frozenset({"docx"})


async def _run_strategies(data: bytes, file_type: str, strategies: List[Strategy]) -> str:
    """
    Try each strategy in order until one returns non-empty text.
    Raises ExtractionFailed with the last error if every strategy raised.
    """
    last_error: Optional[Exception] = None
    for name, extractor in strategies:
        try:
            text = await asyncio.to_thread(extractor, data)
        except Exception as e:
            last_error = e
            logger.warning("%s extraction via %s failed: %s", file_type.upper(), name, e)
            continue
        if text and text.strip():
            return text
        logger.info("%s extraction via %s returned no text", file_type.upper(), name)
        last_error = None
    if last_error is not None:
        raise ExtractionFailed(
            f"{file_type.upper()} extraction failed: {last_error}"
        ) from last_error
    return ""


async def extract_text(data: bytes, file_type: str) -> str:
    """
    Extract and clean text from an uploaded CV held in memory; no disk write.
    Raises UnsupportedFileType for unknown types and ExtractionFailed when
    every strategy for the type failed (DOCX degrades to empty text instead).
    """
    key = normalize_file_type(file_type)
    strategies = EXTRACTION_STRATEGIES.get(key)
    if strategies is None:
        raise UnsupportedFileType(file_type)

    try:
        raw = await _run_strategies(data, key, strategies)
    except ExtractionFailed:
        if key in DEGRADE_TO_EMPTY:
            logger.exception("%s extraction failed; continuing with empty text", key.upper())
            return ""
        raise
    return clean_cv_text(raw)
