"""Pytest configuration and fixtures."""

import os

import pytest

from quote_context.context.engine import ConversationContextEngine
from quote_context.core.config import Settings, get_settings
from quote_context.db.storage import InMemoryConversationStore


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["SUPABASE_URL"] = "https://test.supabase.co"
    os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-key"
    os.environ["QUOTE_CONTEXT_ENV"] = "test"
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Fresh settings with defaults."""
    return Settings()


@pytest.fixture
def store(settings) -> InMemoryConversationStore:
    """Empty in-memory conversation store."""
    return InMemoryConversationStore(settings=settings)


@pytest.fixture
def engine(store, settings) -> ConversationContextEngine:
    """Context engine over the in-memory store."""
    return ConversationContextEngine(store, settings)
