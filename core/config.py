"""
Centralized configuration for the operations bot.

Every setting is read from the environment (populated from .env files by
main.py) through the functions below.
"""

import os
from pathlib import Path

DEFAULT_REMINDER_HOURS = "24,1"


def is_dev_mode() -> bool:
    """Check if running in development mode (--dev flag or DEV_MODE env)."""
    return os.getenv("DEV_MODE", "").lower() in ("true", "1", "yes")


def is_production() -> bool:
    """Check if running on Railway (production environment)."""
    return bool(os.environ.get("RAILWAY_ENVIRONMENT"))


def get_api_port() -> int:
    """Get API server port from env or default."""
    return int(os.getenv("API_PORT", "8000"))


def get_data_dir() -> Path:
    """Directory holding the operation collection files."""
    return Path(os.getenv("DATA_DIR", "data"))


def get_reminder_hours() -> list[float]:
    """
    Default reminder lead times for new operations, in hours.

    Read from OPERATION_REMINDER_HOURS as a comma-separated list ("24,1").
    Entries that are not numbers are ignored.
    """
    raw = os.getenv("OPERATION_REMINDER_HOURS", DEFAULT_REMINDER_HOURS)
    hours = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            hours.append(float(part))
        except ValueError:
            continue
    return hours


def get_roster_channel_id() -> int | None:
    """Channel where the live operations roster is posted, if configured."""
    value = os.getenv("ROSTER_CHANNEL_ID")
    return int(value) if value and value.isdigit() else None


# Required environment variables for production
# Format: (name, description, required_in_dev)
REQUIRED_ENV_VARS = [
    ("DISCORD_BOT_TOKEN", "Discord bot token", True),
    ("DATA_DIR", "Directory for operation data files", False),
    ("ROSTER_CHANNEL_ID", "Channel for the operations roster", False),
]


def check_required_env_vars() -> tuple[bool, list[str]]:
    """
    Check that required environment variables are set.

    Returns:
        (all_ok, warnings): Tuple of success flag and list of warning messages
    """
    warnings = []
    errors = []
    in_dev = is_dev_mode()

    for name, description, required_in_dev in REQUIRED_ENV_VARS:
        value = os.environ.get(name)

        if not value:
            if is_production():
                errors.append(f"  ✗ {name}: Not set ({description})")
            elif required_in_dev or not in_dev:
                warnings.append(f"  ⚠ {name}: Not set ({description})")

    if errors:
        for error in errors:
            print(error)
        return False, warnings

    return True, warnings
