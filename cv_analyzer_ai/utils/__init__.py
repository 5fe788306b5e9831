"""Utility exports."""

from .helpers import decode_base64, normalize_file_type, text_preview
from .logger import get_logger

__all__ = [
    "get_logger",
    "decode_base64",
    "normalize_file_type",
    "text_preview",
]
