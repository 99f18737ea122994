"""Shared test fixtures and configuration."""
import json
import pytest
import os
from typing import Any, Dict, List, Optional, Union
from unittest.mock import AsyncMock, Mock
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

from app.main import app
from app.db.database import Base, get_db
from app.core.dependencies import get_call_session_manager, get_token_authority
from app.services.auth.tokens import SessionTokenAuthority
from app.services.call_session.config import VoiceConfig
from app.services.call_session.manager import CallSessionManager
from app.services.feedback.models import CreateFeedbackParams, FeedbackGenerator, FeedbackResult
from app.services.voice.base import VoiceClient


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_SECRET = "test-secret-key"


class FakeVoiceClient(VoiceClient):
    """Voice client that records calls instead of opening them."""

    def __init__(self, fail_with: Any = None, call_id: str = "call_test_123"):
        super().__init__()
        self.fail_with = fail_with
        self._next_call_id = call_id
        self.start_calls: List[tuple] = []
        self.stop_calls = 0

    async def start(
        self, assistant: Union[str, Dict[str, Any]], options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        self.start_calls.append((assistant, options))
        if self.fail_with is not None:
            raise self.fail_with
        self.call_id = self._next_call_id
        self.web_call_url = f"https://rooms.test/{self.call_id}"
        return {"id": self.call_id, "webCallUrl": self.web_call_url}

    async def stop(self) -> None:
        self.stop_calls += 1


class FakeFeedbackGenerator(FeedbackGenerator):
    """Feedback generator returning a canned result."""

    def __init__(self, result: Optional[FeedbackResult] = None):
        self.result = result or FeedbackResult(success=True, feedback_id="fb_1")
        self.calls: List[CreateFeedbackParams] = []

    async def create_feedback(self, params: CreateFeedbackParams) -> FeedbackResult:
        self.calls.append(params)
        return self.result


@pytest.fixture
async def test_db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def test_session_factory(test_db_engine):
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    """Create test database session."""
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def token_authority():
    """Token authority with a fixed test secret."""
    return SessionTokenAuthority(TEST_SECRET)


@pytest.fixture
def voice_config():
    """Voice configuration with usable credentials."""
    return VoiceConfig(web_token="test-web-token", assistant_id="asst_test_123")


@pytest.fixture
def fake_feedback():
    return FakeFeedbackGenerator()


@pytest.fixture
def voice_clients():
    """Voice clients created by the test session manager, in order."""
    return []


@pytest.fixture
def session_manager(voice_config, fake_feedback, voice_clients):
    """Call session manager wired to fake voice clients."""
    def _factory(session_id: str) -> FakeVoiceClient:
        client = FakeVoiceClient()
        voice_clients.append(client)
        return client

    return CallSessionManager(voice_config, fake_feedback, voice_factory=_factory)


@pytest.fixture(autouse=True)
def clean_call_sessions():
    """Clean up call sessions before and after tests."""
    from app.services.call_session import manager
    manager._sessions.clear()
    manager._call_index.clear()
    manager._created_at.clear()
    yield
    manager._sessions.clear()
    manager._call_index.clear()
    manager._created_at.clear()


@pytest.fixture
async def test_client(test_db, token_authority, session_manager):
    """Create an async API client with overrides."""
    async def _override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_token_authority] = lambda: token_authority
    app.dependency_overrides[get_call_session_manager] = lambda: session_manager

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client

    # Clear overrides
    app.dependency_overrides.clear()


@pytest.fixture
async def authenticated_client(test_client):
    """Create test client with a signed-up user and session cookie."""
    response = await test_client.post(
        "/api/auth/sign-up",
        json={"name": "Ada Lovelace", "email": "ada@example.com", "password": "testpass123"},
    )
    assert response.status_code == 200

    # Session cookie is automatically stored in test_client
    return test_client


def make_completion(content: str) -> Mock:
    completion = Mock()
    completion.choices = [Mock(message=Mock(content=content))]
    return completion


ASSESSMENT = {
    "totalScore": 72,
    "categoryScores": [
        {"name": "Communication Skills", "score": 80, "comment": "Clear answers."},
        {"name": "Technical Knowledge", "score": 70, "comment": "Solid basics."},
        {"name": "Problem-Solving", "score": 65, "comment": "Needed hints."},
        {"name": "Cultural & Role Fit", "score": 75, "comment": "Good fit."},
        {"name": "Confidence & Clarity", "score": 70, "comment": "Some hesitation."},
    ],
    "strengths": ["Structured answers"],
    "areasForImprovement": ["Go deeper on trade-offs"],
    "finalAssessment": "A promising candidate.",
}


@pytest.fixture
def mock_openai():
    """Mock OpenAI API client returning a valid assessment."""
    mock_client = Mock()
    mock_client.chat.completions.create = AsyncMock(
        return_value=make_completion(json.dumps(ASSESSMENT))
    )
    return mock_client


@pytest.fixture
def fake_voice():
    """Voice client that records start/stop calls."""
    return FakeVoiceClient()


@pytest.fixture
def assessment():
    """A valid model assessment, as a fresh dict."""
    return json.loads(json.dumps(ASSESSMENT))


@pytest.fixture
def fake_voice_class():
    """The fake voice client class, for tests that build their own clients."""
    return FakeVoiceClient
