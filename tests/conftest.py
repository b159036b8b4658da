"""Shared test fixtures and configuration."""
import json
import os
from unittest.mock import AsyncMock, Mock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from twilio.request_validator import RequestValidator

# Set test environment variables before importing app
os.environ.setdefault("TWILIO_AUTH_TOKEN", "test-token")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CLINIC_NAME", "Test Clinic")
os.environ.setdefault("ENVIRONMENT", "production")

from app.main import app
from app.db.database import get_db
from app.db.models import Base, Provider
from app.core.dependencies import get_openai_client, get_session_factory
from app.services.analysis.prompt import EMERGENCY_SYSTEM_PROMPT, INTENT_SYSTEM_PROMPT, REPLY_SYSTEM_PROMPT
from app.services.broadcast.broadcaster import EventBroadcaster


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_AUTH_TOKEN = "test-token"
TEST_BASE_URL = "http://testserver"


@pytest.fixture
async def test_db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_db_engine):
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def test_db(session_factory):
    """Create test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def seeded_providers(test_db):
    """A few providers around central Karachi."""
    providers = [
        Provider(name="Dr. Ayesha Siddiqui", specialization="General Physician", phone="+922134000001",
                 address="Block 5, Clifton", latitude=24.8138, longitude=67.0300, rating=4.7),
        Provider(name="Saddar Family Clinic", specialization="Family Medicine", phone="+922134000002",
                 address="Saddar", latitude=24.8560, longitude=67.0300, rating=4.2),
        Provider(name="Northern Heart Centre", specialization="Cardiology", phone="+922134000003",
                 address="North Nazimabad", latitude=24.9420, longitude=67.0370, rating=4.9),
        Provider(name="Closed Clinic", specialization="Dentist", latitude=24.8140, longitude=67.0310,
                 is_active=False),
    ]
    test_db.add_all(providers)
    await test_db.commit()
    return providers


def make_completion(content):
    """Shape of an OpenAI chat completion, as far as the pipeline reads it."""
    return Mock(choices=[Mock(message=Mock(content=content))])


@pytest.fixture
def mock_openai():
    """Factory for a mocked OpenAI client.

    Responses are chosen by the system prompt of each request. A value that is
    an exception is raised instead of returned.
    """
    def _factory(intent=None, emergency=None, reply="Sure, I can help with that."):
        responses = {
            INTENT_SYSTEM_PROMPT: json.dumps(intent) if isinstance(intent, dict) else intent,
            EMERGENCY_SYSTEM_PROMPT: json.dumps(emergency) if isinstance(emergency, dict) else emergency,
            REPLY_SYSTEM_PROMPT: reply,
        }

        async def _create(**kwargs):
            response = responses[kwargs["messages"][0]["content"]]
            if isinstance(response, Exception):
                raise response
            return make_completion(response)

        client = Mock()
        client.chat.completions.create = AsyncMock(side_effect=_create)
        return client

    return _factory


def sign(url: str, params: dict, token: str = TEST_AUTH_TOKEN) -> str:
    """X-Twilio-Signature for a form POST."""
    return RequestValidator(token).compute_signature(url, params)


@pytest.fixture
def broadcaster():
    return EventBroadcaster()


@pytest.fixture
def override_get_db(test_db):
    """Override get_db dependency with test database."""
    async def _override_get_db():
        yield test_db
    return _override_get_db


@pytest.fixture
async def test_client(override_get_db, session_factory, broadcaster):
    """Async client against the app with the test database and no OpenAI client."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_openai_client] = lambda: None
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    original_broadcaster = app.state.broadcaster
    app.state.broadcaster = broadcaster

    async with AsyncClient(transport=ASGITransport(app=app), base_url=TEST_BASE_URL) as client:
        yield client

    app.state.broadcaster = original_broadcaster
    app.dependency_overrides.clear()


@pytest.fixture
def post_signed(test_client):
    """POST a form to a webhook path with a valid Twilio signature."""
    async def _post(path: str, params: dict, token: str = TEST_AUTH_TOKEN):
        signature = sign(f"{TEST_BASE_URL}{path}", params, token)
        return await test_client.post(path, data=params, headers={"X-Twilio-Signature": signature})
    return _post
