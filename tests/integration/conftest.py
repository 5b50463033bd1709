"""Integration test configuration.

Integration tests:
- Moderate speed: <5s per test
- Real file system (workbooks, JSON, CSV)
- No live network: the ranking service is replaced by a fake HTTP session
"""

from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def _integration_marker(request: pytest.FixtureRequest) -> None:
    """Auto-apply integration marker and timeout to all tests in this directory."""
    request.node.add_marker(pytest.mark.integration)
    request.node.add_marker(pytest.mark.timeout(5))
