import os
from collections.abc import AsyncGenerator

# Test settings must be in place before the application is imported
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("PROFILE_CACHE_ENABLED", "false")
os.environ.setdefault("LOG_FORMAT", "console")

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient

# Load environment variables from .env file (does not override the above)
load_dotenv()

from session_broker.core.cookies import TokenTransport
from session_broker.core.error_normalizer import ErrorNormalizer
from session_broker.dependencies import (
    get_identity_provider,
    get_profile_cache,
    get_profile_store,
)
from session_broker.main import app
from session_broker.services.profile_service import ProfileService
from session_broker.services.session_service import SessionService
from fakes import FakeIdentityProvider, InMemoryProfileStore


@pytest.fixture
def provider() -> FakeIdentityProvider:
    """Fake identity provider."""
    return FakeIdentityProvider()


@pytest.fixture
def profile_store() -> InMemoryProfileStore:
    """Empty in-memory profile store."""
    return InMemoryProfileStore()


@pytest.fixture
def profile_service(profile_store: InMemoryProfileStore) -> ProfileService:
    """Profile resolver without a cache."""
    return ProfileService(profile_store)


@pytest.fixture
def session_service(
    provider: FakeIdentityProvider,
    profile_service: ProfileService,
) -> SessionService:
    """Session lifecycle service wired to the fakes."""
    return SessionService(
        provider=provider,
        profiles=profile_service,
        transport=TokenTransport(),
        normalizer=ErrorNormalizer(),
        password_recovery_redirect="http://localhost:3000/reset-password",
    )


@pytest_asyncio.fixture
async def client(
    provider: FakeIdentityProvider,
    profile_store: InMemoryProfileStore,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client backed by the fakes."""
    app.dependency_overrides[get_identity_provider] = lambda: provider
    app.dependency_overrides[get_profile_store] = lambda: profile_store
    app.dependency_overrides[get_profile_cache] = lambda: None

    async with AsyncClient(transport=ASGITransport(app=app), base_url="https://test") as client:
        yield client

    app.dependency_overrides.clear()
