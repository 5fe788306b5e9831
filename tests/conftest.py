"""
Pytest configuration and fixtures.

Environment is set before any application module imports config, so tests
never touch a real LLM endpoint or an on-disk database.
"""

import os

os.environ["LLM_API_KEY"] = "test-key"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PERSIST_RESULTS"] = "false"

import json
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cv_pipeline.completion_client import CompletionClient, CompletionConfig
from storage.models import Base
from tests.fixtures.llm_responses import SAMPLE_RECORD, make_completion, make_llm


@pytest.fixture
def sleeps():
    """Records backoff delays instead of sleeping."""
    return []


@pytest.fixture
def completion_config():
    return CompletionConfig(
        api_key="test-key",
        base_url="https://llm.test/v1",
        model="test-model",
        max_retries=4,
        base_delay_seconds=1.0,
        jitter_seconds=0.0,
    )


@pytest.fixture
def make_client(completion_config, sleeps):
    """Factory: CompletionClient over a mocked LLM returning the given outcomes."""

    async def fake_sleep(delay):
        sleeps.append(delay)

    def factory(*outcomes, config=None):
        return CompletionClient(config or completion_config, client=make_llm(*outcomes), sleep=fake_sleep)

    return factory


@pytest.fixture
def ok_client(make_client):
    """Client that answers every request with SAMPLE_RECORD."""
    client = make_client()
    client._client.chat.completions.create = AsyncMock(
        side_effect=lambda **kwargs: make_completion(json.dumps(SAMPLE_RECORD))
    )
    return client


@pytest.fixture
def db_session():
    """Session on a fresh in-memory database shared across threads."""
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()
