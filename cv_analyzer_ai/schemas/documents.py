"""Submitted documents, completion requests and per-document processing results."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.candidate_record import CandidateRecord


class SubmittedDocument(BaseModel):
    """One uploaded CV as sent by the caller: base64 payload plus declared file type."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    base64: Optional[str] = Field(default=None, description="Base64-encoded document bytes")
    file_type: Optional[str] = Field(
        default=None, alias="fileType", description="pdf, docx, png, jpg or jpeg"
    )
    candidate_status: Optional[str] = Field(
        default=None, alias="candidateStatus", description="Caller-defined status stored with the result"
    )

    @field_validator("candidate_status", mode="before")
    @classmethod
    def _status_as_text(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)


class CompletionRequest(BaseModel):
    """Chat request sent to the LLM for one document. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    system_prompt: str
    user_content: str

    def to_messages(self) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": self.user_content},
        ]


class ProcessingResult(BaseModel):
    """Outcome for one submitted document; index is its position in the batch."""

    model_config = ConfigDict(populate_by_name=True)

    index: int
    status: Literal["success", "error"]
    result: Optional[CandidateRecord] = None
    error: Optional[str] = None
    raw_content: Optional[str] = Field(default=None, alias="rawContent")
    extracted_text: Optional[str] = Field(default=None, alias="extractedText")

    @classmethod
    def success(cls, index: int, record: CandidateRecord) -> "ProcessingResult":
        return cls(index=index, status="success", result=record)

    @classmethod
    def failure(cls, index: int, error: str, raw_content: Optional[str] = None) -> "ProcessingResult":
        return cls(index=index, status="error", error=error, raw_content=raw_content)

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready dict with camelCase keys; unset optional keys are omitted."""
        out: Dict[str, Any] = {"index": self.index, "status": self.status}
        if self.result is not None:
            out["result"] = self.result.to_dict()
        if self.error is not None:
            out["error"] = self.error
        if self.raw_content is not None:
            out["rawContent"] = self.raw_content
        if self.extracted_text is not None:
            out["extractedText"] = self.extracted_text
        return out
