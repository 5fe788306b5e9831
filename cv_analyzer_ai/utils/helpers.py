"""Helper utilities for the CV Analyzer AI system."""

import base64
import binascii
import re


def normalize_file_type(file_type: str) -> str:
    """Normalize a declared file type tag ('PDF', '.docx', ' jpg ') to its lowercase key."""
    if not file_type:
        return ""
    return str(file_type).strip().lower().lstrip(".")


def decode_base64(data: str) -> bytes:
    """
    Decode a base64 payload, accepting data-URL prefixes and missing padding.
    Raises ValueError if the payload is not valid base64.
    """
    raw = (data or "").strip()
    if raw.startswith("data:") and "," in raw:
        raw = raw.split(",", 1)[1]
    raw = re.sub(r"\s+", "", raw)
    raw += "=" * (-len(raw) % 4)
    try:
        return base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 data: {e}") from e


def text_preview(text: str, max_chars: int = 200) -> str:
    """Single-line preview of text for logs."""
    if not text:
        return ""
    flat = re.sub(r"\s+", " ", text).strip()
    if len(flat) > max_chars:
        return flat[:max_chars] + "..."
    return flat
