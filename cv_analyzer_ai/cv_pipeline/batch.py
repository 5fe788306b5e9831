"""Batch coordinator: fan documents out to the per-document pipeline concurrently."""

import asyncio
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from config import BATCH_CONCURRENCY, DOCUMENT_TIMEOUT_SECONDS
from cv_pipeline.completion_client import CompletionClient
from cv_pipeline.cv_extractor import (
    Extractor,
    analyze_text,
    extract_document,
    process_document,
)
from cv_pipeline.errors import InvalidInput
from cv_pipeline.text_extractor import extract_text
from schemas.documents import ProcessingResult
from utils.logger import get_logger

logger = get_logger(__name__)


def _ensure_sequence(items: Any, field: str) -> Sequence[Any]:
    if not isinstance(items, (list, tuple)):
        raise InvalidInput(f"Invalid format: {field} should be an array.")
    return items


async def _gather_bounded(
    items: Sequence[Any],
    worker: Callable[[Any, int], Awaitable[ProcessingResult]],
    concurrency: Optional[int],
) -> List[ProcessingResult]:
    """
    Run worker(item, index) for every item and return results in input order.
    concurrency of 0/None means unbounded fan-out.
    """
    if not concurrency or concurrency <= 0:
        return list(await asyncio.gather(*[worker(item, i) for i, item in enumerate(items)]))

    sem = asyncio.Semaphore(concurrency)

    async def task(item: Any, index: int) -> ProcessingResult:
        async with sem:
            return await worker(item, index)

    return list(await asyncio.gather(*[task(item, i) for i, item in enumerate(items)]))


def _log_summary(kind: str, results: List[ProcessingResult]) -> None:
    ok = sum(1 for r in results if r.ok)
    logger.info("%s finished: documents=%s success=%s error=%s", kind, len(results), ok, len(results) - ok)


async def process_batch(
    documents: Any,
    client: CompletionClient,
    extractor: Extractor = extract_text,
    concurrency: Optional[int] = BATCH_CONCURRENCY,
    timeout: Optional[float] = DOCUMENT_TIMEOUT_SECONDS,
) -> List[ProcessingResult]:
    """
    Process every submitted document and return one ProcessingResult per input,
    in input order. Raises InvalidInput only if `documents` is not a list.
    """
    docs = _ensure_sequence(documents, "documents")

    async def worker(doc: Any, index: int) -> ProcessingResult:
        return await process_document(doc, index, client, extractor=extractor, timeout=timeout)

    results = await _gather_bounded(docs, worker, concurrency)
    _log_summary("CV batch", results)
    return results


async def extract_batch(
    documents: Any,
    extractor: Extractor = extract_text,
    concurrency: Optional[int] = BATCH_CONCURRENCY,
    timeout: Optional[float] = DOCUMENT_TIMEOUT_SECONDS,
) -> List[ProcessingResult]:
    """Extract text only (no LLM call) for every submitted document."""
    docs = _ensure_sequence(documents, "documents")

    async def worker(doc: Any, index: int) -> ProcessingResult:
        return await extract_document(doc, index, extractor=extractor, timeout=timeout)

    results = await _gather_bounded(docs, worker, concurrency)
    _log_summary("Extraction batch", results)
    return results


async def analyze_texts(
    texts: Any,
    client: CompletionClient,
    concurrency: Optional[int] = BATCH_CONCURRENCY,
    timeout: Optional[float] = DOCUMENT_TIMEOUT_SECONDS,
) -> List[ProcessingResult]:
    """Run the LLM extraction for every already-extracted CV text."""
    items = _ensure_sequence(texts, "texts")

    async def worker(text: Any, index: int) -> ProcessingResult:
        return await analyze_text(text, index, client, timeout=timeout)

    results = await _gather_bounded(items, worker, concurrency)
    _log_summary("Text analysis batch", results)
    return results


def run_cv_batch(documents: Any, client: Optional[CompletionClient] = None) -> List[ProcessingResult]:
    """
    Run process_batch from sync code (e.g. Streamlit) on a fresh event loop.
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(process_batch(documents, client or CompletionClient()))
    finally:
        loop.close()
