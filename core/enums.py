"""Enum definitions for operation state."""

import enum


class ResponseStatus(str, enum.Enum):
    attending = "attending"
    pending = "pending"  # attending, position not chosen yet
    undecided = "undecided"
    declined = "declined"

    @property
    def is_attending(self) -> bool:
        return self in (ResponseStatus.attending, ResponseStatus.pending)


class OperationState(str, enum.Enum):
    scheduled = "scheduled"
    active = "active"
