"""
Pytest configuration and fixtures for Coffee World tests.
"""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from coffeeworld.api.main import create_app
from coffeeworld.api.dependencies import ServiceContainer, Settings, get_service_container
from coffeeworld.crowd import CheckInService, InMemoryCheckInStore, Subject
from coffeeworld.storage import ReviewRepository, SqlCheckInStore


T0 = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


# =============================================================================
# Test Settings
# =============================================================================

def get_test_settings() -> Settings:
    """Return settings configured for testing."""
    return Settings(
        database_url="sqlite:///:memory:",
        database_echo=False,
        checkin_store="memory",
        seed_demo_data=False,
        verifier_mode="simulated",
        session_secret="test-secret",
        dev_login_enabled=True,
        rate_limit_enabled=False,
        environment="test",
        debug=True,
    )


# =============================================================================
# Domain Fixtures
# =============================================================================

@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def memory_store() -> InMemoryCheckInStore:
    return InMemoryCheckInStore()


@pytest.fixture
def sql_store():
    store = SqlCheckInStore(database_url="sqlite:///:memory:")
    yield store
    store.engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Every check-in store implementation."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def checkin_service(memory_store, clock) -> CheckInService:
    return CheckInService(memory_store, clock=clock)


@pytest.fixture
def review_repository():
    repo = ReviewRepository(database_url="sqlite:///:memory:")
    yield repo
    repo.engine.dispose()


@pytest.fixture
def verified_subject() -> Subject:
    return Subject("wid_alice", verified=True, name="Alice")


@pytest.fixture
def unverified_subject() -> Subject:
    return Subject("dev_bob", verified=False, name="Bob")


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest_asyncio.fixture(scope="function")
async def container(clock) -> AsyncGenerator[ServiceContainer, None]:
    """Service container wired with test settings and a frozen clock."""
    services = ServiceContainer(get_test_settings(), clock=clock)
    yield services
    await services.close()


@pytest_asyncio.fixture(scope="function")
async def app(container):
    """Create FastAPI application for testing."""
    application = create_app(get_test_settings())

    # Override dependencies
    application.dependency_overrides[get_service_container] = lambda: container

    yield application

    application.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API tests."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def verified_headers(container) -> dict:
    token = container.sessions.issue("wid_alice", name="Alice", verified=True)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def unverified_headers(container) -> dict:
    token = container.sessions.issue("dev_bob", name="Bob", verified=False)
    return {"Authorization": f"Bearer {token}"}
