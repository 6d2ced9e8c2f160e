"""
MemoTap Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the whole suite.
How:   Environment is pointed at a throwaway SQLite URL and fake API keys
       BEFORE any app module is imported (app.config and app.database read
       it at import time). Nothing here talks to Gemini or PostgreSQL.

Fixtures:
    ├── mock_db_session:     AsyncMock standing in for AsyncSession
    ├── make_transport:      builds a GenerativeTransport replaying canned replies/errors
    ├── fixed_now:           Friday 2024-01-19 14:05 UTC
    ├── make_pipeline:       builds an ExtractionPipeline over a fresh pool
    └── test_client:         HTTPX AsyncClient bound to the FastAPI app
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./memotap_test.db"
os.environ["GEMINI_API_KEYS"] = "test-key-1,test-key-2"
os.environ["EXTRACTION_TIMEZONE"] = "UTC"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"

from datetime import datetime, timezone
from typing import List, Optional, Sequence, Union
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.services.extraction_service import ExtractionPipeline
from app.services.key_pool import CredentialPool
from app.services.llm_base import GenerativeTransport

Reply = Union[str, BaseException]


class ScriptedTransport(GenerativeTransport):
    """
    Replays scripted replies in order; an exception in the script is raised.

    Records the API key of every call so tests can see which key each
    attempt used.
    """

    def __init__(
        self,
        audio_replies: Sequence[Reply] = (),
        text_replies: Sequence[Reply] = (),
        healthy: bool = True,
    ):
        self.healthy = healthy
        self.health_keys: List[str] = []
        self.audio_replies: List[Reply] = list(audio_replies)
        self.text_replies: List[Reply] = list(text_replies)
        self.audio_keys: List[str] = []
        self.text_keys: List[str] = []
        self.prompts: List[str] = []
        self.instructions: List[str] = []

    @staticmethod
    def _next(replies: List[Reply]) -> str:
        if not replies:
            raise AssertionError("ScriptedTransport ran out of replies")
        reply = replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def generate_from_audio(self, api_key, model, audio, mime_type, instruction):
        self.audio_keys.append(api_key)
        self.instructions.append(instruction)
        return self._next(self.audio_replies)

    async def generate_from_text(self, api_key, model, prompt):
        self.text_keys.append(api_key)
        self.prompts.append(prompt)
        return self._next(self.text_replies)

    async def health_check(self, api_key):
        self.health_keys.append(api_key)
        return self.healthy


@pytest.fixture
def mock_db_session():
    """
    Mock async database session.

    Usage:
        result = MagicMock()
        result.scalar_one_or_none.return_value = task
        mock_db_session.execute.return_value = result
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    session.add_all = MagicMock()
    return session


@pytest.fixture
def fixed_now():
    # A Friday
    return datetime(2024, 1, 19, 14, 5, 30, tzinfo=timezone.utc)


@pytest.fixture
def make_transport():
    """Factory: make_transport(audio_replies=[...], text_replies=[...])"""
    return ScriptedTransport


@pytest.fixture
def make_pipeline(fixed_now):
    """
    Factory: make_pipeline(transport, keys=("key-a", "key-b"), max_attempts=5)
    """

    def _make(
        transport: GenerativeTransport,
        keys: Sequence[str] = ("key-a", "key-b"),
        max_attempts: int = 5,
        timezone_name: str = "UTC",
        pool: Optional[CredentialPool] = None,
    ) -> ExtractionPipeline:
        return ExtractionPipeline(
            transport=transport,
            key_pool=pool if pool is not None else CredentialPool(keys),
            model="gemini-2.5-flash",
            max_attempts=max_attempts,
            timezone=timezone_name,
            clock=lambda: fixed_now,
        )

    return _make


@pytest_asyncio.fixture
async def test_client():
    """
    HTTPX AsyncClient talking to the FastAPI app in-process.

    ASGITransport does not run the lifespan, so tests provide the pipeline,
    key pool and DB session through app.dependency_overrides; overrides are
    cleared afterwards.
    """
    from app.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
