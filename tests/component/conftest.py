"""
Component Test Layer Configuration

Structure:
    tests/component/
    ├── denim_ops/   Service tests wired through build_services
    └── mocks/       Mock implementations

Usage:
    pytest tests/component -v
    pytest tests/component/denim_ops -v
"""
import os
import sys

import pytest

# Set testing environment BEFORE any imports
os.environ["ENV"] = "testing"
os.environ["ENVIRONMENT"] = "testing"
os.environ["NATS_ENABLED"] = "false"

# Add project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from tests.component.mocks import (
    MockDenimRepository,
    MockEventBus,
    MockNotificationSink,
    MockPostgresClient,
)


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom markers"""
    config.addinivalue_line(
        "markers", "component: marks tests as component tests"
    )


# =============================================================================
# Infrastructure Mocks
# =============================================================================

@pytest.fixture
def mock_db() -> MockPostgresClient:
    """Mock asyncpg pool wrapper"""
    return MockPostgresClient()


@pytest.fixture
def mock_store() -> MockDenimRepository:
    """In-memory denim store"""
    return MockDenimRepository()


@pytest.fixture
def mock_event_bus() -> MockEventBus:
    """Mock NATS event bus"""
    return MockEventBus()


@pytest.fixture
def mock_notifications() -> MockNotificationSink:
    """Recording notification sink"""
    return MockNotificationSink()
