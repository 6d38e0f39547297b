from pathlib import Path

import pytest
import yaml
from fastapi.testclient import TestClient

from storefront_gateway.core.storage import MemoryStore
from storefront_gateway.models.config_models import AppConfig
from tests.factories import MockUpstream, TestDataFactory

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture(scope="session")
def test_config():
    """Load test configuration from the fixtures directory"""
    with open(FIXTURES_DIR / "test_config.yml", "r") as f:
        config_data = yaml.safe_load(f)
    return AppConfig.from_dict(config_data)


@pytest.fixture
def mock_upstream():
    return MockUpstream()


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def app(test_config, mock_upstream, memory_store):
    """Gateway application wired to the mock upstream and an in-memory store"""
    # Import here so the module-level app is only built when needed
    from storefront_gateway.main import create_application

    return create_application(
        config=test_config,
        http_client=mock_upstream.client(),
        store=memory_store,
        target=TestDataFactory.create_target(),
    )


@pytest.fixture
def client(app):
    """Create a test client for the gateway with test configuration"""
    with TestClient(app) as test_client:
        yield test_client
