"""LLM chat-completion client for CV extraction, with rate-limit backoff."""

import asyncio
import random
from typing import Any, Awaitable, Callable, Optional

import httpx
import openai
from openai import AsyncOpenAI
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from config import (
    LLM_API_KEY,
    LLM_BASE_URL,
    LLM_TEMPERATURE,
    LLM_TIMEOUT_SECONDS,
    MODEL_NAME,
    RATE_LIMIT_BASE_DELAY_SECONDS,
    RATE_LIMIT_JITTER_SECONDS,
    RATE_LIMIT_MAX_RETRIES,
)
from cv_pipeline.errors import CompletionFailed, MalformedResponse, RateLimited
from cv_pipeline.response_sanitizer import sanitize_response
from schemas.candidate_record import CandidateRecord
from schemas.documents import CompletionRequest
from utils.logger import get_logger

logger = get_logger(__name__)

# Bump whenever the prompt text changes; model behavior depends on it.
CV_EXTRACTION_PROMPT_VERSION = "2024-12-01"

CV_EXTRACTION_SYSTEM_PROMPT = """You are an AI assistant specialized in extracting structured information from CV texts.
Analyze the provided CV text and extract all relevant details. Your output must be a single valid JSON object with the following keys:
- Name: the full name of the candidate.
- ContactInformation: all contact details such as email, phone number, address, and any other available contact info.
- Summary: a brief professional summary or objective, if available.
- Education: list of {"Institution", "Degree", "FieldOfStudy", "Dates"}.
- WorkExperience: list of {"JobTitle", "Company", "Duration", "Description"}.
- Skills: a flat list of technical and soft skills (strings only, not grouped by category).
- Certifications: list of certifications or licenses obtained.
- Languages: list of {"Language", "Proficiency"}.
- Projects: list of {"name", "description"}.
- Achievements: list of awards, honors, or special recognitions.
- OtherDetails: any additional relevant information that does not fit in the above categories.
Important:
- If any field is missing from the CV text, assign it an empty string or an empty array (for list-type fields) as appropriate.
- Return only the JSON object (no markdown, no code block, no commentary).
- Handle variations in CV formats and naming conventions gracefully.
Your task is to parse and structure the CV text completely, ensuring no important details are omitted."""


class CompletionConfig(BaseModel):
    """Settings for the completion endpoint, passed to the client at construction."""

    model_config = ConfigDict(frozen=True)

    api_key: str = ""
    base_url: Optional[str] = None
    model: str = MODEL_NAME
    system_prompt: str = CV_EXTRACTION_SYSTEM_PROMPT
    prompt_version: str = CV_EXTRACTION_PROMPT_VERSION
    temperature: Optional[float] = LLM_TEMPERATURE
    timeout_seconds: float = LLM_TIMEOUT_SECONDS
    max_retries: int = Field(default=RATE_LIMIT_MAX_RETRIES, ge=0)
    base_delay_seconds: float = RATE_LIMIT_BASE_DELAY_SECONDS
    jitter_seconds: float = RATE_LIMIT_JITTER_SECONDS

    @classmethod
    def from_env(cls) -> "CompletionConfig":
        return cls(api_key=LLM_API_KEY, base_url=LLM_BASE_URL or None)


def backoff_delay(attempt: int, base_delay: float, jitter: float = 0.0) -> float:
    """Delay before retry number `attempt` (0-based): base * 2**attempt plus optional jitter."""
    delay = base_delay * (2 ** attempt)
    if jitter > 0:
        delay += random.uniform(0, jitter)
    return delay


class CompletionClient:
    """
    Sends one chat completion per CV text and returns the normalized CandidateRecord.
    Only rate-limit responses (HTTP 429) are retried, with exponential backoff.
    """

    def __init__(
        self,
        config: Optional[CompletionConfig] = None,
        client: Optional[Any] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config or CompletionConfig.from_env()
        self._client = client
        self._sleep = sleep

    def _get_client(self) -> Any:
        """Create (lazy) the async OpenAI-compatible client."""
        if self._client is None:
            if not self.config.api_key:
                raise CompletionFailed("LLM_API_KEY is not set; cannot run CV extraction")
            self._client = AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=httpx.Timeout(self.config.timeout_seconds),
                max_retries=0,  # retries handled in complete_raw
            )
        return self._client

    def build_request(self, text: str) -> CompletionRequest:
        return CompletionRequest(system_prompt=self.config.system_prompt, user_content=text)

    async def _create(self, request: CompletionRequest) -> Any:
        kwargs = {"model": self.config.model, "messages": request.to_messages()}
        if self.config.temperature is not None:
            kwargs["temperature"] = self.config.temperature
        return await self._get_client().chat.completions.create(**kwargs)

    async def complete_raw(self, text: str) -> str:
        """Return the raw completion content for `text`, retrying on rate limits."""
        request = self.build_request(text)
        attempts = self.config.max_retries + 1
        for attempt in range(attempts):
            try:
                response = await self._create(request)
                break
            except openai.RateLimitError as e:
                if attempt >= self.config.max_retries:
                    logger.error("Rate limit hit %s times; giving up", attempt + 1)
                    raise RateLimited(attempt + 1) from e
                delay = backoff_delay(attempt, self.config.base_delay_seconds, self.config.jitter_seconds)
                logger.warning(
                    "Rate limit hit (attempt %s/%s), retrying in %.2fs", attempt + 1, attempts, delay
                )
                await self._sleep(delay)
            except openai.APIStatusError as e:
                raise CompletionFailed(f"LLM request failed with status {e.status_code}: {e.message}") from e
            except openai.OpenAIError as e:
                raise CompletionFailed(f"LLM request failed: {e}") from e

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message or not choice.message.content:
            raise CompletionFailed("LLM returned an empty completion")
        return choice.message.content

    async def complete(self, text: str) -> CandidateRecord:
        """Run one completion for `text` and return the sanitized CandidateRecord."""
        raw = await self.complete_raw(text)
        parsed = sanitize_response(raw)
        try:
            return CandidateRecord.model_validate(parsed)
        except ValidationError as e:
            logger.warning("CandidateRecord validation failed: %s", e)
            raise MalformedResponse(
                f"AI response does not match the CV schema ({e.error_count()} errors)", raw
            ) from e
