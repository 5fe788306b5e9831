import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CVResponse(Base):
    """
    One analyzed CV: the processing result plus the uploaded document.

    Written once per successfully processed document; read back by id or by
    creation-time range.
    """
    __tablename__ = 'cv_response'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    index = Column("batch_index", Integer, nullable=False)  # Position in the submitted batch
    status = Column(String(16), nullable=False)  # success|error
    result = Column(JSON, nullable=True)  # CandidateRecord (canonical keys)
    error = Column(Text, nullable=True)
    raw_content = Column(Text, nullable=True)

    base64 = Column(Text, nullable=True)
    candidate_status = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        Index('idx_cv_response_created_at', 'created_at'),
    )

    def to_dict(self, include_base64: bool = True) -> Dict[str, Any]:
        """PersistedResponse shape: the processing result plus id, base64, candidateStatus, createdAt."""
        out: Dict[str, Any] = {
            "id": self.id,
            "index": self.index,
            "status": self.status,
            "candidateStatus": self.candidate_status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
        if self.result is not None:
            out["result"] = self.result
        if self.error is not None:
            out["error"] = self.error
        if self.raw_content is not None:
            out["rawContent"] = self.raw_content
        if include_base64:
            out["base64"] = self.base64
        return out
