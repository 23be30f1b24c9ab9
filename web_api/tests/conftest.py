# web_api/tests/conftest.py
"""Pytest fixtures for web API tests.

Installs a real operations runtime backed by tmp_path so the routes can be
exercised without Discord.
"""

from unittest.mock import AsyncMock

import pytest

from core.operations.runtime import build_runtime, set_runtime


@pytest.fixture
def runtime(tmp_path):
    platform = AsyncMock()
    platform.create_group.return_value = "role-1"
    platform.create_channels.return_value = {"category": "cat-1", "info": "info-1"}
    runtime = build_runtime(tmp_path, platform, reminder_hours=[24, 1], sleep=AsyncMock())
    set_runtime(runtime)
    yield runtime
    set_runtime(None)
