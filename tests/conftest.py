"""Shared pytest fixtures and configuration."""

import os
import pytest
from unittest.mock import Mock
from freezegun import freeze_time

from tests.utils.helpers import Clock, EventRecorder, FakeEligibilityProvider, create_orchestrator
from tests.utils.memory_store import InMemoryOfferStore

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("OFFER_TTL_HOURS", "72")
os.environ.setdefault("SWEEP_INTERVAL_SECONDS", "60")


@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client for testing."""
    client = Mock()
    client.table = Mock(return_value=Mock())
    client.rpc = Mock(return_value=Mock())
    return client


@pytest.fixture
def store():
    """Empty in-memory offer store."""
    return InMemoryOfferStore()


@pytest.fixture
def provider():
    """Eligibility provider without profiles."""
    return FakeEligibilityProvider()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def orchestrator(store, provider, clock, recorder):
    """Orchestrator over the in-memory store, recording published events."""
    orchestrator = create_orchestrator(store, provider, clock)
    orchestrator.publisher.subscribe(recorder)
    return orchestrator


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2024-12-09 12:00:00") as frozen_time:
        yield frozen_time


@pytest.fixture(scope="function")
def reset_environment(monkeypatch):
    """Reset environment variables for each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)
