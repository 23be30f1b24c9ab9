"""
Utility helpers for the bot cogs.

Turns slash-command text arguments into the types the operations core
expects. Business logic stays in core/.
"""

import re
import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from core.operations.types import Position

_DISCORD_TIMESTAMP = re.compile(r"^<t:(\d+)(?::[a-zA-Z])?>$")
_TIME_FORMATS = ("%Y-%m-%d %H:%M", "%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M")


def parse_positions(text: str | None) -> list[Position]:
    """
    Parse "Pilot:1, Crew:4, Observer" into positions.

    A missing limit means unbounded.

    Raises:
        ValueError: A limit is not a whole number.
    """
    positions = []
    for part in (text or "").split(","):
        part = part.strip()
        if not part:
            continue
        name, sep, limit = part.rpartition(":")
        if not sep:
            positions.append(Position(name=part))
            continue
        name = name.strip()
        limit = limit.strip()
        if not limit.isdigit():
            raise ValueError(f"Limit for '{name}' must be a whole number, got '{limit}'")
        positions.append(Position(name=name, max_slots=int(limit)))
    return positions


def parse_start_time(text: str | None) -> datetime | None:
    """
    Parse a start time given as "YYYY-MM-DD HH:MM" (UTC), ISO-8601, a unix
    timestamp, or a Discord timestamp tag like <t:1700000000:F>.

    Raises:
        ValueError: The text matches none of the accepted formats.
    """
    if text is None or not text.strip():
        return None
    text = text.strip()

    match = _DISCORD_TIMESTAMP.match(text)
    if match:
        return datetime.fromtimestamp(int(match.group(1)), tz=timezone.utc)
    if text.isdigit():
        return datetime.fromtimestamp(int(text), tz=timezone.utc)

    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_reminder_hours(text: str | None) -> list[float] | None:
    """Parse "24, 1, 0.5" into lead times. None when no text was given."""
    if text is None or not text.strip():
        return None
    return [float(part) for part in text.split(",") if part.strip()]
