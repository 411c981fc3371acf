"""
Root conftest.py - Global fixtures and configuration for all test layers.

Test Layers:
    - component/  : Service tests against in-memory store and event bus mocks
    - unit/       : Unit tests (pure functions, no I/O)
"""
import os
import sys
from typing import Any, Dict

import pytest

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

os.environ.setdefault("ENV", "testing")
os.environ.setdefault("NATS_ENABLED", "false")


# =============================================================================
# Test Configuration
# =============================================================================

class TestConfig:
    """Centralized test configuration"""

    # SKUs used across layers
    STA_SKU = "ST-32-S-30-STA"
    RAW_SKU = "ST-32-S-36-RAW"
    BRW_SKU = "ST-32-S-36-BRW"

    # Infrastructure
    POSTGRES_HOST = os.getenv("POSTGRES_HOST", "localhost")
    POSTGRES_PORT = int(os.getenv("POSTGRES_PORT", "5432"))
    NATS_URL = os.getenv("NATS_URL", "nats://localhost:4222")


@pytest.fixture(scope="session")
def test_config() -> TestConfig:
    """Provide test configuration"""
    return TestConfig()


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def sample_order_line() -> Dict[str, Any]:
    """A single-unit order line for a finished wash"""
    return {"sku": TestConfig.STA_SKU, "quantity": 1}
