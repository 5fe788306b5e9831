from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from schemas.documents import ProcessingResult, SubmittedDocument
from storage.models import CVResponse
from utils.logger import get_logger

logger = get_logger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _as_document(doc: Any) -> Optional[SubmittedDocument]:
    if isinstance(doc, SubmittedDocument):
        return doc
    if isinstance(doc, dict):
        return SubmittedDocument.model_validate(doc)
    return None


class CVResponseRepository:
    def __init__(self, db: Session):
        self.db = db

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    def save_result(
        self,
        result: ProcessingResult,
        document: Optional[SubmittedDocument] = None,
    ) -> CVResponse:
        """Insert one processing result with its source document. Caller commits."""
        row = CVResponse(
            index=result.index,
            status=result.status,
            result=result.result.to_dict() if result.result is not None else None,
            error=result.error,
            raw_content=result.raw_content,
            base64=document.base64 if document else None,
            candidate_status=document.candidate_status if document else None,
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(row)
        self.db.flush()
        return row

    def save_results(
        self,
        results: Sequence[ProcessingResult],
        documents: Sequence[Any],
    ) -> List[CVResponse]:
        """
        Insert every successful result, each in its own transaction; errors are
        not persisted. A row that fails to insert is logged and rolled back
        without affecting the others.
        """
        rows = []
        for result in results:
            if not result.ok:
                continue
            doc = documents[result.index] if result.index < len(documents) else None
            try:
                row = self.save_result(result, _as_document(doc))
                self.commit()
                rows.append(row)
            except SQLAlchemyError:
                logger.exception("Failed to persist result [%s]", result.index)
                self.rollback()
        logger.info("Persisted %s of %s results", len(rows), len(results))
        return rows

    def get_by_id(self, response_id: str) -> Optional[CVResponse]:
        return self.db.get(CVResponse, response_id)

    def list_between(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[CVResponse]:
        """Responses created in [start, end], oldest first."""
        stmt = select(CVResponse)
        start, end = _as_utc(start), _as_utc(end)
        if start is not None:
            stmt = stmt.where(CVResponse.created_at >= start)
        if end is not None:
            stmt = stmt.where(CVResponse.created_at <= end)
        stmt = stmt.order_by(CVResponse.created_at.asc()).limit(limit)
        return list(self.db.execute(stmt).scalars().all())
