"""
Operation data model.

Dataclasses are the in-memory representation held by the registry. The
``to_dict``/``from_dict`` pairs define the on-disk JSON shape: responses and
assignments are nested ``participant_id -> value`` mappings, instants are
ISO-8601 strings.
"""

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from core.enums import OperationState, ResponseStatus


def new_operation_id() -> str:
    """Generate a collision-resistant operation id."""
    return f"op_{secrets.token_hex(12)}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_instant(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_instant(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class Position:
    """A named, optionally capacity-limited role within an operation."""
    name: str
    max_slots: Optional[int] = None  # None = unbounded

    def to_dict(self) -> dict:
        return {"name": self.name, "max_slots": self.max_slots}

    @classmethod
    def from_dict(cls, data: dict) -> "Position":
        max_slots = data.get("max_slots")
        return cls(
            name=data["name"],
            max_slots=int(max_slots) if max_slots is not None else None,
        )


@dataclass
class Response:
    """A participant's stated intent, captured with their display name."""
    status: ResponseStatus
    display_name: str = ""
    responded_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "display_name": self.display_name,
            "responded_at": _format_instant(self.responded_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Response":
        return cls(
            status=ResponseStatus(data["status"]),
            display_name=data.get("display_name", ""),
            responded_at=_parse_instant(data.get("responded_at")) or utcnow(),
        )


@dataclass
class Operation:
    """A scheduled group activity with positions and participants."""
    operation_id: str
    guild_id: str
    name: str
    leader: str = ""
    time_text: str = ""
    details: str = ""
    positions: list[Position] = field(default_factory=list)
    start_at: Optional[datetime] = None
    reminder_hours: list[float] = field(default_factory=list)
    fired_reminders: list[float] = field(default_factory=list)
    role_id: Optional[str] = None
    channel_ids: dict[str, str] = field(default_factory=dict)
    responses: dict[str, Response] = field(default_factory=dict)
    assignments: dict[str, str] = field(default_factory=dict)
    attending_count: int = 0
    state: OperationState = OperationState.active
    created_by: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    def get_position(self, name: str) -> Position | None:
        for position in self.positions:
            if position.name == name:
                return position
        return None

    def occupancy(self, position_name: str, exclude: str | None = None) -> int:
        """Count assignments to a position, optionally ignoring one participant."""
        return sum(
            1
            for participant_id, assigned in self.assignments.items()
            if assigned == position_name and participant_id != exclude
        )

    def reminder_instant(self, lead_hours: float) -> datetime | None:
        if self.start_at is None:
            return None
        return self.start_at - timedelta(hours=lead_hours)

    def unfired_reminders(self) -> list[float]:
        return [h for h in self.reminder_hours if h not in self.fired_reminders]

    def next_reminder_at(self, now: datetime | None = None) -> datetime | None:
        """Earliest unfired reminder instant still in the future."""
        now = now or utcnow()
        instants = [
            self.reminder_instant(hours) for hours in self.unfired_reminders()
        ]
        upcoming = [i for i in instants if i is not None and i > now]
        return min(upcoming) if upcoming else None

    def attendee_ids(self) -> list[str]:
        """Participants attending (any variant) or holding an assignment."""
        ids = [
            participant_id
            for participant_id, response in self.responses.items()
            if response.status.is_attending
        ]
        for participant_id in self.assignments:
            if participant_id not in ids:
                ids.append(participant_id)
        return ids

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "guild_id": self.guild_id,
            "name": self.name,
            "leader": self.leader,
            "time_text": self.time_text,
            "details": self.details,
            "positions": [p.to_dict() for p in self.positions],
            "start_at": _format_instant(self.start_at),
            "reminder_hours": list(self.reminder_hours),
            "fired_reminders": list(self.fired_reminders),
            "role_id": self.role_id,
            "channel_ids": dict(self.channel_ids),
            "responses": {
                participant_id: response.to_dict()
                for participant_id, response in self.responses.items()
            },
            "assignments": dict(self.assignments),
            "attending_count": self.attending_count,
            "state": self.state.value,
            "created_by": self.created_by,
            "created_at": _format_instant(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Operation":
        return cls(
            operation_id=data["operation_id"],
            guild_id=str(data["guild_id"]),
            name=data["name"],
            leader=data.get("leader", ""),
            time_text=data.get("time_text", ""),
            details=data.get("details", ""),
            positions=[Position.from_dict(p) for p in data.get("positions", [])],
            start_at=_parse_instant(data.get("start_at")),
            reminder_hours=[float(h) for h in data.get("reminder_hours", [])],
            fired_reminders=[float(h) for h in data.get("fired_reminders", [])],
            role_id=data.get("role_id"),
            channel_ids=dict(data.get("channel_ids") or {}),
            responses={
                participant_id: Response.from_dict(response)
                for participant_id, response in (data.get("responses") or {}).items()
            },
            assignments=dict(data.get("assignments") or {}),
            attending_count=int(data.get("attending_count", 0)),
            state=OperationState(data.get("state", OperationState.active.value)),
            created_by=data.get("created_by"),
            created_at=_parse_instant(data.get("created_at")) or utcnow(),
        )
