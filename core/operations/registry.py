"""
In-memory operation registry - the source of truth for the running process.

Holds two keyed collections: active operations and scheduled operations that
have not been confirmed yet. All writes go through this object so persistence
happens at a single choke point.
"""

import logging
import math
from datetime import datetime, timedelta

from core.enums import OperationState

from .errors import InvalidLeadTime, OperationNotFound
from .store import ACTIVE_COLLECTION, SCHEDULED_COLLECTION, DurableStore
from .types import Operation, Position, new_operation_id, utcnow

logger = logging.getLogger(__name__)


# Scheduled operations not confirmed within this window are discarded
SCHEDULED_RETENTION = timedelta(hours=24)


def validate_lead_hours(lead_hours) -> list[float]:
    """Normalize reminder lead times to a sorted, de-duplicated float list."""
    normalized = []
    for value in lead_hours or []:
        try:
            hours = float(value)
        except (TypeError, ValueError):
            raise InvalidLeadTime(f"Reminder lead time {value!r} is not a number")
        if not math.isfinite(hours) or hours <= 0:
            raise InvalidLeadTime(f"Reminder lead time must be positive, got {value!r}")
        if hours not in normalized:
            normalized.append(hours)
    return sorted(normalized, reverse=True)


class OperationRegistry:
    """Owns every Operation (and its responses/assignments) in the process."""

    def __init__(self, store: DurableStore):
        self.store = store
        self._active: dict[str, Operation] = {}
        self._scheduled: dict[str, Operation] = {}

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Rebuild both collections from disk. Bad records are skipped."""
        self._active = self._decode(self.store.load(ACTIVE_COLLECTION))
        self._scheduled = self._decode(self.store.load(SCHEDULED_COLLECTION))
        logger.info(
            f"Loaded {len(self._active)} active and "
            f"{len(self._scheduled)} scheduled operations"
        )

    def _decode(self, raw: dict) -> dict[str, Operation]:
        operations = {}
        for operation_id, record in raw.items():
            try:
                operations[operation_id] = Operation.from_dict(record)
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Skipping unreadable operation {operation_id}: {e}")
        return operations

    def snapshot(self) -> dict[str, dict]:
        return {
            ACTIVE_COLLECTION: {
                op_id: op.to_dict() for op_id, op in self._active.items()
            },
            SCHEDULED_COLLECTION: {
                op_id: op.to_dict() for op_id, op in self._scheduled.items()
            },
        }

    def save(self) -> bool:
        """Persist both collections. Returns False if either write failed."""
        ok = True
        for name, collection in self.snapshot().items():
            ok = self.store.save(name, collection) and ok
        return ok

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, operation_id: str) -> Operation | None:
        return self._active.get(operation_id) or self._scheduled.get(operation_id)

    def require(self, operation_id: str) -> Operation:
        operation = self.get(operation_id)
        if operation is None:
            raise OperationNotFound(operation_id)
        return operation

    def list_active(self, guild_id: str | None = None) -> list[Operation]:
        return [
            op for op in self._active.values()
            if guild_id is None or op.guild_id == str(guild_id)
        ]

    def list_scheduled(self, guild_id: str | None = None) -> list[Operation]:
        return [
            op for op in self._scheduled.values()
            if guild_id is None or op.guild_id == str(guild_id)
        ]

    def all_operations(self) -> list[Operation]:
        return list(self._active.values()) + list(self._scheduled.values())

    def get_active(self, guild_id: str) -> Operation | None:
        """Most recently created active operation for a community."""
        operations = self.list_active(guild_id)
        if not operations:
            return None
        return max(operations, key=lambda op: op.created_at)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(
        self,
        guild_id: str,
        name: str,
        *,
        leader: str = "",
        time_text: str = "",
        details: str = "",
        positions: list[Position] | None = None,
        start_at: datetime | None = None,
        reminder_hours: list[float] | None = None,
        created_by: str | None = None,
        scheduled: bool = False,
    ) -> Operation:
        """Register a new operation in the active or scheduled collection."""
        operation = Operation(
            operation_id=new_operation_id(),
            guild_id=str(guild_id),
            name=name,
            leader=leader,
            time_text=time_text,
            details=details,
            positions=list(positions or []),
            start_at=start_at,
            reminder_hours=validate_lead_hours(reminder_hours),
            created_by=created_by,
            state=OperationState.scheduled if scheduled else OperationState.active,
        )
        # Regenerate on the (negligible) chance of a collision
        while self.get(operation.operation_id) is not None:
            operation.operation_id = new_operation_id()

        if scheduled:
            self._scheduled[operation.operation_id] = operation
        else:
            self._active[operation.operation_id] = operation
        logger.info(
            f"Registered {operation.state.value} operation "
            f"{operation.operation_id} ({name}) in guild {guild_id}"
        )
        return operation

    def promote(self, operation_id: str) -> Operation:
        """Move a scheduled operation into the active collection."""
        operation = self._scheduled.pop(operation_id, None)
        if operation is None:
            if operation_id in self._active:
                return self._active[operation_id]
            raise OperationNotFound(operation_id)
        operation.state = OperationState.active
        self._active[operation_id] = operation
        return operation

    def remove(self, operation_id: str) -> Operation:
        operation = self._active.pop(operation_id, None) or self._scheduled.pop(
            operation_id, None
        )
        if operation is None:
            raise OperationNotFound(operation_id)
        return operation

    def purge_expired_scheduled(self, now: datetime | None = None) -> list[Operation]:
        """Drop scheduled operations older than the retention window."""
        now = now or utcnow()
        expired = [
            op for op in self._scheduled.values()
            if now - op.created_at > SCHEDULED_RETENTION
        ]
        for operation in expired:
            del self._scheduled[operation.operation_id]
            logger.info(
                f"Discarded unconfirmed scheduled operation {operation.operation_id}"
            )
        return expired
