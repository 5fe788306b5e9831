"""Per-document CV pipeline: decode, extract text, LLM extraction, tagged result."""

import asyncio
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import ValidationError

from config import DOCUMENT_TIMEOUT_SECONDS
from cv_pipeline.completion_client import CompletionClient
from cv_pipeline.errors import (
    CVPipelineError,
    ExtractionFailed,
    InvalidInput,
    MalformedResponse,
    MissingField,
)
from cv_pipeline.text_extractor import extract_text
from schemas.candidate_record import CandidateRecord
from schemas.documents import ProcessingResult, SubmittedDocument
from utils.helpers import decode_base64, text_preview
from utils.logger import get_logger

logger = get_logger(__name__)

Extractor = Callable[[bytes, str], Awaitable[str]]


def coerce_document(doc: Any) -> SubmittedDocument:
    """Build a SubmittedDocument from a caller mapping; raises MissingField on bad shape."""
    if isinstance(doc, SubmittedDocument):
        return doc
    if not isinstance(doc, dict):
        raise MissingField("Missing base64 or fileType")
    try:
        return SubmittedDocument.model_validate(doc)
    except ValidationError as e:
        raise InvalidInput(f"Invalid document fields: {e.error_count()} errors") from e


async def extract_document_text(
    doc: Union[SubmittedDocument, dict],
    extractor: Extractor = extract_text,
) -> str:
    """Validate a submitted document, decode it and return its extracted text."""
    document = coerce_document(doc)
    if not document.base64 or not document.file_type:
        raise MissingField("Missing base64 or fileType")
    try:
        data = decode_base64(document.base64)
    except ValueError as e:
        raise InvalidInput(str(e)) from e
    return await extractor(data, document.file_type)


def _timeout_or_none(timeout: Optional[float]) -> Optional[float]:
    return timeout if timeout and timeout > 0 else None


def _error_message(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


async def _analyze(
    doc: Union[SubmittedDocument, dict],
    index: int,
    client: CompletionClient,
    extractor: Extractor,
) -> CandidateRecord:
    text = await extract_document_text(doc, extractor)
    logger.debug("Extracted text [%s]: %s", index, text_preview(text))
    if not text.strip():
        raise ExtractionFailed("No text could be extracted from document")
    return await client.complete(text)


async def process_document(
    doc: Union[SubmittedDocument, dict],
    index: int,
    client: CompletionClient,
    extractor: Extractor = extract_text,
    timeout: Optional[float] = DOCUMENT_TIMEOUT_SECONDS,
) -> ProcessingResult:
    """
    Run the full pipeline for one document and return a tagged ProcessingResult.
    Never raises: every failure becomes a status='error' result for this index,
    so one bad document cannot affect its siblings.
    """
    try:
        record = await asyncio.wait_for(
            _analyze(doc, index, client, extractor), timeout=_timeout_or_none(timeout)
        )
        return ProcessingResult.success(index, record)
    except MalformedResponse as e:
        logger.warning("Processing error [%s]: %s", index, e)
        return ProcessingResult.failure(index, _error_message(e), raw_content=e.raw_content)
    except CVPipelineError as e:
        logger.warning("Processing error [%s]: %s", index, e)
        return ProcessingResult.failure(index, _error_message(e))
    except asyncio.TimeoutError:
        logger.warning("Processing error [%s]: timed out after %ss", index, timeout)
        return ProcessingResult.failure(index, f"Processing timed out after {timeout} seconds")
    except Exception as e:
        logger.exception("Unexpected processing error [%s]", index)
        return ProcessingResult.failure(index, _error_message(e))


async def extract_document(
    doc: Union[SubmittedDocument, dict],
    index: int,
    extractor: Extractor = extract_text,
    timeout: Optional[float] = DOCUMENT_TIMEOUT_SECONDS,
) -> ProcessingResult:
    """Extract-only variant of process_document: the result carries extractedText."""
    try:
        text = await asyncio.wait_for(
            extract_document_text(doc, extractor), timeout=_timeout_or_none(timeout)
        )
        return ProcessingResult(index=index, status="success", extracted_text=text)
    except CVPipelineError as e:
        logger.warning("Extraction error [%s]: %s", index, e)
        return ProcessingResult.failure(index, _error_message(e))
    except asyncio.TimeoutError:
        logger.warning("Extraction error [%s]: timed out after %ss", index, timeout)
        return ProcessingResult.failure(index, f"Extraction timed out after {timeout} seconds")
    except Exception as e:
        logger.exception("Unexpected extraction error [%s]", index)
        return ProcessingResult.failure(index, _error_message(e))


async def analyze_text(
    text: Any,
    index: int,
    client: CompletionClient,
    timeout: Optional[float] = DOCUMENT_TIMEOUT_SECONDS,
) -> ProcessingResult:
    """Text-only variant of process_document for already extracted CV text."""
    try:
        if not isinstance(text, str) or not text.strip():
            raise InvalidInput("Text must be a non-empty string")
        record = await asyncio.wait_for(client.complete(text), timeout=_timeout_or_none(timeout))
        return ProcessingResult.success(index, record)
    except MalformedResponse as e:
        logger.warning("Analysis error [%s]: %s", index, e)
        return ProcessingResult.failure(index, _error_message(e), raw_content=e.raw_content)
    except CVPipelineError as e:
        logger.warning("Analysis error [%s]: %s", index, e)
        return ProcessingResult.failure(index, _error_message(e))
    except asyncio.TimeoutError:
        logger.warning("Analysis error [%s]: timed out after %ss", index, timeout)
        return ProcessingResult.failure(index, f"Analysis timed out after {timeout} seconds")
    except Exception as e:
        logger.exception("Unexpected analysis error [%s]", index)
        return ProcessingResult.failure(index, _error_message(e))
