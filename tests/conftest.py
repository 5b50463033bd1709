"""Root test configuration.

This conftest.py provides shared fixtures and configuration for all test tiers.
Each tier (unit, integration) has its own conftest with tier-specific setup.
"""

from __future__ import annotations

import pytest
from helpers import CATALOG


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (<250ms)")
    config.addinivalue_line("markers", "integration: Integration tests (<5s)")


@pytest.fixture
def catalog() -> list[str]:
    """Eight-dungeon season catalog."""
    return list(CATALOG)
