"""Root pytest configuration."""

from pathlib import Path

import pytest
from dotenv import load_dotenv

# Load environment variables before tests run
_root = Path(__file__).parent
load_dotenv(_root / ".env")
load_dotenv(_root / ".env.local", override=True)


@pytest.fixture(autouse=True)
def isolated_process_state(monkeypatch):
    """Each test starts with no bot, no runtime and default operation settings."""
    from core.discord_outbound import set_bot
    from core.operations.runtime import set_runtime

    for name in ("DATA_DIR", "OPERATION_REMINDER_HOURS", "ROSTER_CHANNEL_ID"):
        monkeypatch.delenv(name, raising=False)
    set_bot(None)
    set_runtime(None)
    yield
    set_bot(None)
    set_runtime(None)
