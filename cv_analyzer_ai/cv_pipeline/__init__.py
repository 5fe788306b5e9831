"""CV pipeline: text extraction (PDF/DOCX/images), LLM extraction, batch processing."""

from cv_pipeline.batch import analyze_texts, extract_batch, process_batch, run_cv_batch
from cv_pipeline.completion_client import CompletionClient, CompletionConfig
from cv_pipeline.cv_extractor import process_document
from cv_pipeline.response_sanitizer import sanitize_response
from cv_pipeline.text_extractor import extract_text

__all__ = [
    "process_batch",
    "extract_batch",
    "analyze_texts",
    "run_cv_batch",
    "process_document",
    "CompletionClient",
    "CompletionConfig",
    "sanitize_response",
    "extract_text",
]
