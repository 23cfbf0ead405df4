"""Pytest configuration and fixtures."""

import os
import sys
from collections.abc import AsyncGenerator, Generator
from pathlib import Path
from uuid import uuid4

# Disable rate limiting in tests
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from domain.services.image_normalizer import ImageNormalizer
from domain.services.profile_service import ProfileService
from domain.services.profile_validator import ProfileValidator
from infrastructure.auth.jwt_provider import JWTAuthProvider
from infrastructure.auth.provider import TokenUser
from infrastructure.storage.filesystem import FileSystemStorage
from tests.helpers import TickingClock

# Fixed test user ID for consistency
TEST_USER_ID = str(uuid4())


@pytest.fixture
def storage(tmp_path: Path) -> FileSystemStorage:
    """File storage rooted in a per-test temp directory."""
    data_path = tmp_path / "profiles"
    return FileSystemStorage.open(data_path, data_path / "images", data_path / "tags")


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def service(storage: FileSystemStorage, clock: TickingClock) -> ProfileService:
    """Profile service over real temp-directory storage."""
    return ProfileService(
        storage,
        validator=ProfileValidator(),
        normalizer=ImageNormalizer(),
        clock=clock,
    )


@pytest.fixture
def test_user() -> TokenUser:
    """Create a test user with fixed ID."""
    return TokenUser(uuid=TEST_USER_ID, email="test@example.com")


@pytest.fixture
def auth_provider() -> JWTAuthProvider:
    """Create auth provider for testing."""
    return JWTAuthProvider(
        secret_key="test-secret-key",
        algorithm="HS256",
        expire_minutes=30,
    )


@pytest.fixture
def auth_token(auth_provider: JWTAuthProvider, test_user: TokenUser) -> str:
    """Create auth token for test user."""
    return str(auth_provider.create_token(test_user))


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    """Create authorization headers."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client (no auth)."""
    from main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def test_app(
    storage: FileSystemStorage,
    service: ProfileService,
    auth_provider: JWTAuthProvider,
) -> Generator[FastAPI, None, None]:
    """
    Create an app wired to temp-directory storage.

    Overrides the auth provider to the test signing key, and storage and the
    profile service to the per-test instances. Tests may add further overrides.
    """
    from api.dependencies.auth import get_auth_provider
    from api.v1.dependencies import get_profile_service, get_storage
    from main import create_app

    app = create_app()

    app.dependency_overrides[get_auth_provider] = lambda: auth_provider
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_profile_service] = lambda: service

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
async def authenticated_client(
    test_app: FastAPI,
    auth_headers: dict[str, str],
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client that sends a bearer token for ``TEST_USER_ID``."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(
        transport=transport, base_url="http://test", headers=auth_headers
    ) as c:
        yield c
