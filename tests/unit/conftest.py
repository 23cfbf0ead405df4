"""Shared fixtures for unit tests."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest


class FakeStorage:
    """Fake storage handle with repository mocks for unit testing."""

    def __init__(self) -> None:
        self.profiles = AsyncMock()
        self.images = AsyncMock()
        self.tags = AsyncMock()
        self.profiles.exists.return_value = False
        self.profiles.get.return_value = None
        self.profiles.put.side_effect = lambda profile: profile
        self.tags.get.return_value = {}


@pytest.fixture
def fake_storage() -> FakeStorage:
    """Create a fresh FakeStorage."""
    return FakeStorage()


@pytest.fixture
def profile_uuid() -> str:
    """A random profile identifier."""
    return str(uuid4())
