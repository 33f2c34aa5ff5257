"""Fixtures for API tests: an app wired to in-memory backends."""

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from api.dependencies import ServiceContainer, reset_container


@pytest.fixture
def container(test_settings) -> ServiceContainer:
    return ServiceContainer(test_settings)


@pytest.fixture
def client(container):
    """Test client; lifespan is not run, in-memory services need no startup."""
    yield TestClient(create_app(container), raise_server_exceptions=False)
    reset_container()
