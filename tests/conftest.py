"""
Pytest Configuration and Fixtures

Shared fixtures for all tests. No test talks to a real LLM or network:
providers are replaced by FakeProvider and HTTP calls are monkeypatched.
"""

import shutil
import tempfile
from pathlib import Path
from typing import List, Optional

import pytest

from satire_engine.core.config import LLMSettings, Settings
from satire_engine.core.enums import PersonaType, SatiricalFormat
from satire_engine.core.errors import ProviderError
from satire_engine.core.llm import BaseLLMProvider, ChatMessage, LLMResponse, TokenUsage
from satire_engine.engine import SatireEngine
from satire_engine.services.model_availability import ModelAvailabilityService
from satire_engine.storage.datastore import JsonDatastore


class FakeProvider(BaseLLMProvider):
    """Provider returning canned replies; a reply that is an exception is raised."""

    provider_name = "fake"

    def __init__(self, replies: Optional[List] = None, model_name: str = "fake-model"):
        super().__init__(model_name=model_name)
        self.replies = list(replies or [])
        self.calls: List[List[ChatMessage]] = []

    def chat(self, messages, temperature=0.7, max_tokens=1000):
        self.calls.append(list(messages))
        reply = self.replies.pop(0) if self.replies else "Default fake reply."
        if isinstance(reply, Exception):
            raise reply
        return LLMResponse(
            text=reply,
            model=self.model_name,
            usage=TokenUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15),
        )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep real API keys and engine settings out of the tests."""
    for name in (
        "OPENAI_API_KEY", "ANTHROPIC_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY",
        "LLM_PROVIDER", "LLM_MODEL", "LLM_BASE_URL", "LLM_REQUEST_TIMEOUT", "SVPP_DATA_DIR", "JWT_SECRET",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def settings(temp_dir) -> Settings:
    """Settings using a local model, fast bcrypt and no retry delay."""
    return Settings(
        data_dir=temp_dir,
        llm_provider="local",
        llm_model="llama2",
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        llm=LLMSettings(max_retries=2, retry_base_delay=0),
    )


@pytest.fixture
def datastore() -> JsonDatastore:
    """In-memory datastore."""
    return JsonDatastore()


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def provider_factory(fake_provider):
    """Provider factory that always hands out the shared fake provider."""
    def factory(provider, model, api_key=None, base_url=None, timeout=None):
        return fake_provider
    return factory


@pytest.fixture
def engine(settings, provider_factory) -> SatireEngine:
    """Fully wired in-memory engine backed by the fake provider."""
    return SatireEngine(
        settings=settings,
        persist=False,
        provider_factory=provider_factory,
        availability=ModelAvailabilityService(),
    )


@pytest.fixture
def sample_user(datastore):
    return datastore.create_user("Test Director", "director@example.com", PersonaType.PROJECT_DIRECTOR)


@pytest.fixture
def sample_project(datastore, sample_user):
    return datastore.create_project(
        name="Ministry of Silly Budgets",
        created_by=sample_user.id,
        description="Satire about a government budget announcement",
        satirical_format=SatiricalFormat.NEWS_PARODY,
    )


@pytest.fixture
def sample_article(datastore, sample_project, sample_user):
    return datastore.create_article(
        title="Government Announces Budget Cuts",
        content="The finance minister announced sweeping cuts to public services. " * 30,
        project_id=sample_project.id,
        uploaded_by=sample_user.id,
        source="Daily Ledger",
    )


@pytest.fixture
def provider_error() -> ProviderError:
    return ProviderError("fake", "Service unavailable")
