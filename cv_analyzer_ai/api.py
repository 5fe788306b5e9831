"""
CV Analyzer HTTP API - FastAPI application.

Usage:
    python run_app.py api

Then open:
    - http://localhost:3000/api/health - Health check
    - http://localhost:3000/docs - API Documentation (Swagger UI)
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from config import (
    API_HOST,
    API_PORT,
    CORS_ALLOW_ORIGINS,
    MAX_REQUEST_BYTES,
    PERSIST_RESULTS,
)
from cv_pipeline.batch import analyze_texts, extract_batch, process_batch
from cv_pipeline.completion_client import CompletionClient
from cv_pipeline.errors import InvalidInput
from schemas.documents import ProcessingResult
from storage.database import db_session_scope, get_db, init_db
from storage.repository import CVResponseRepository
from utils.logger import get_logger

logger = get_logger(__name__)

SERVICE_NAME = "cv-analyzer"


@asynccontextmanager
async def lifespan(app: FastAPI):
    if PERSIST_RESULTS:
        init_db()
    yield


app = FastAPI(
    title="CV Analyzer API",
    description="Extract structured CV data from PDF, DOCX and image uploads",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    allow_credentials=CORS_ALLOW_ORIGINS != ["*"],
)


_completion_client: Optional[CompletionClient] = None


def get_completion_client() -> CompletionClient:
    """Process-wide completion client (one HTTP connection pool)."""
    global _completion_client
    if _completion_client is None:
        _completion_client = CompletionClient()
    return _completion_client


def persist_results(results: List[ProcessingResult], documents: List[Any]) -> None:
    """Store successful results; storage failures never change the batch response."""
    try:
        with db_session_scope() as db:
            CVResponseRepository(db).save_results(results, documents)
    except Exception:
        logger.exception("Failed to persist CV results")


@app.exception_handler(InvalidInput)
async def invalid_input_handler(request: Request, exc: InvalidInput) -> JSONResponse:
    logger.warning("Rejected request to %s: %s", request.url.path, exc)
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unexpected error in %s: %s", request.url.path, exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": str(exc) or "Internal server error", "details": "No additional details"},
    )


@app.middleware("http")
async def limit_body_size(request: Request, call_next):
    length = request.headers.get("content-length")
    if length and length.isdigit() and int(length) > MAX_REQUEST_BYTES:
        return JSONResponse(status_code=413, content={"error": "Request body too large"})
    return await call_next(request)


def _batch_field(payload: Any, field: str) -> Any:
    if not isinstance(payload, dict):
        raise InvalidInput(f"Invalid format: {field} should be an array.")
    return payload.get(field)


@app.post("/api/analyze-cvs")
async def analyze_cvs(
    payload: Any = Body(default=None),
    client: CompletionClient = Depends(get_completion_client),
) -> Dict[str, Any]:
    """
    Analyze a batch of CVs: {documents: [{base64, fileType, candidateStatus?}]}.

    Every document gets a result with its index; one failing document never
    fails the batch.
    """
    documents = _batch_field(payload, "documents")
    results = await process_batch(documents, client)
    if PERSIST_RESULTS and any(r.ok for r in results):
        await asyncio.to_thread(persist_results, results, documents)
    return {"totalProcessed": len(results), "results": [r.to_dict() for r in results]}


@app.post("/api/process-bulk-cvs")
async def process_bulk_cvs(payload: Any = Body(default=None)) -> Dict[str, Any]:
    """Extract plain text from a batch of CVs without calling the LLM."""
    documents = _batch_field(payload, "documents")
    results = await extract_batch(documents)
    return {"totalProcessed": len(results), "results": [r.to_dict() for r in results]}


@app.post("/api/analyze-bulk-texts")
async def analyze_bulk_texts(
    payload: Any = Body(default=None),
    client: CompletionClient = Depends(get_completion_client),
) -> Dict[str, Any]:
    """Analyze already extracted CV texts: {texts: ["..."]}."""
    texts = _batch_field(payload, "texts")
    results = await analyze_texts(texts, client)
    return {"totalAnalyzed": len(results), "results": [r.to_dict() for r in results]}


@app.get("/api/responses/{response_id}")
def get_response(response_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Fetch one stored CV analysis by id."""
    row = CVResponseRepository(db).get_by_id(response_id)
    if row is None:
        raise HTTPException(status_code=404, detail=f"Response {response_id} not found")
    return row.to_dict()


@app.get("/api/responses")
def list_responses(
    start: Optional[datetime] = Query(default=None, description="Created at or after (ISO 8601)"),
    end: Optional[datetime] = Query(default=None, description="Created at or before (ISO 8601)"),
    limit: int = Query(default=100, ge=1, le=1000),
    include_base64: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """List stored CV analyses created in a time range, oldest first."""
    rows = CVResponseRepository(db).list_between(start, end, limit=limit)
    return {"total": len(rows), "results": [r.to_dict(include_base64=include_base64) for r in rows]}


@app.get("/api/health")
def health_check() -> Dict[str, Any]:
    """Health check endpoint."""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": SERVICE_NAME,
    }


def main():
    """Run the API server."""
    import uvicorn

    logger.info("Starting CV Analyzer API on %s:%s", API_HOST, API_PORT)
    uvicorn.run("api:app", host=API_HOST, port=API_PORT, reload=False, log_level="info")


if __name__ == "__main__":
    main()
