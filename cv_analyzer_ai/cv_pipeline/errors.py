"""Error kinds raised by the CV pipeline."""

from typing import Optional


class CVPipelineError(Exception):
    """Base exception for CV pipeline errors."""
    pass


class InvalidInput(CVPipelineError):
    """Raised when a batch request (or a document payload) has the wrong shape."""
    pass


class MissingField(CVPipelineError):
    """Raised when a document lacks base64 data or a file type."""
    pass


class UnsupportedFileType(CVPipelineError):
    """Raised when a document's file type is not one of the recognized tags."""

    def __init__(self, file_type: Optional[str]):
        self.file_type = file_type
        super().__init__(f"Unsupported file type: {file_type}")


class ExtractionFailed(CVPipelineError):
    """Raised when no text extraction strategy succeeded for a document."""
    pass


class CompletionFailed(CVPipelineError):
    """Raised when the LLM completion call fails without being retryable."""
    pass


class RateLimited(CompletionFailed):
    """Raised when the LLM endpoint kept rate-limiting after all retries."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Rate limit still exceeded after {attempts} attempts")


class MalformedResponse(CVPipelineError):
    """Raised when no JSON object can be recovered from the LLM response."""

    def __init__(self, message: str, raw_content: str):
        self.raw_content = raw_content
        super().__init__(message)
