"""Schema exports."""

from .candidate_record import (
    CandidateRecord,
    EducationEntry,
    LanguageEntry,
    ProjectEntry,
    WorkExperienceEntry,
)
from .documents import CompletionRequest, ProcessingResult, SubmittedDocument

__all__ = [
    "CandidateRecord",
    "EducationEntry",
    "WorkExperienceEntry",
    "LanguageEntry",
    "ProjectEntry",
    "SubmittedDocument",
    "CompletionRequest",
    "ProcessingResult",
]
