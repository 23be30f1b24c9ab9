"""Operations: data model, registry, assignment engine and persistence.

The lifecycle service and runtime wiring live in .service and .runtime and
are imported directly, since they depend on core.notifications.
"""

from .assignments import AssignmentEngine, AssignmentResult, parse_response
from .errors import (
    CapacityExceeded,
    InvalidLeadTime,
    InvalidPosition,
    InvalidResponse,
    OperationError,
    OperationNotFound,
    PositionNotFound,
    StoreWriteError,
)
from .registry import OperationRegistry, validate_lead_hours
from .store import DurableStore
from .types import Operation, Position, Response

__all__ = [
    "AssignmentEngine",
    "AssignmentResult",
    "parse_response",
    "OperationError",
    "OperationNotFound",
    "PositionNotFound",
    "CapacityExceeded",
    "InvalidResponse",
    "InvalidLeadTime",
    "InvalidPosition",
    "StoreWriteError",
    "OperationRegistry",
    "validate_lead_hours",
    "DurableStore",
    "Operation",
    "Position",
    "Response",
]
