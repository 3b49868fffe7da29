"""
Pytest configuration and fixtures for promsync tests.
"""

from __future__ import annotations

import os
from typing import Dict, Generator

import pytest

from promsync.config import reset_config


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(scope="session")
def test_env() -> Dict[str, str]:
    """Test environment variables."""
    return {
        "PROMSYNC_LOG_FORMAT": "text",
        "PROMSYNC_HTTP_MAX_RETRIES": "0",
    }


@pytest.fixture(autouse=True)
def set_test_env(test_env: Dict[str, str]) -> Generator[None, None, None]:
    """Set test environment variables for each test."""
    original = {}
    for key, value in test_env.items():
        original[key] = os.environ.get(key)
        os.environ[key] = value

    reset_config()
    yield
    reset_config()

    for key, value in original.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value
