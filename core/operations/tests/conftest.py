"""Fixtures for operations tests: a real store in tmp_path and a fake platform."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from core.operations.assignments import AssignmentEngine
from core.operations.registry import OperationRegistry
from core.operations.store import DurableStore
from core.operations.types import Position


class FakePlatform:
    """In-memory Platform; every method is an AsyncMock so calls can be asserted."""

    def __init__(self):
        self.create_group = AsyncMock(return_value="role-1")
        self.delete_group = AsyncMock()
        self.create_channels = AsyncMock(
            return_value={
                "category": "cat-1",
                "info": "info-1",
                "chat": "chat-1",
                "voice": "voice-1",
            }
        )
        self.delete_channel = AsyncMock()
        self.add_member = AsyncMock()
        self.remove_member = AsyncMock()
        self.get_group_member_ids = AsyncMock(return_value=[])
        self.fetch_display_name = AsyncMock(return_value="Member")
        self.send_dm = AsyncMock()
        self.send_channel_message = AsyncMock()


@pytest.fixture
def store(tmp_path):
    return DurableStore(tmp_path)


@pytest.fixture
def registry(store):
    return OperationRegistry(store)


@pytest.fixture
def roster():
    return MagicMock()


@pytest.fixture
def engine(registry, roster):
    return AssignmentEngine(registry, roster=roster)


@pytest.fixture
def platform():
    return FakePlatform()


@pytest.fixture
def thunder(registry):
    """Operation Thunder-01: Pilot (1), Crew (4), Observer (unbounded)."""
    return registry.create(
        "guild-1",
        "Thunder-01",
        leader="Cmdr Vale",
        positions=[
            Position("Pilot", 1),
            Position("Crew", 4),
            Position("Observer"),
        ],
    )
