"""
Assignment engine - response and position state machine per participant.

    UNSET     --attending-->          PENDING
    PENDING   --select_position-->    ATTENDING(position)
    ATTENDING --select_position-->    ATTENDING(other position)
    any       --undecided/declined--> RESOLVED (assignment removed)

The attending counter on the operation only moves when a participant enters
or leaves ATTENDING, never on a move between positions.

Every method is synchronous: the capacity check and the assignment write
happen without yielding to the event loop, so two participants racing for the
last slot cannot both get it.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from core.enums import ResponseStatus

from .errors import CapacityExceeded, InvalidPosition, InvalidResponse, PositionNotFound
from .registry import OperationRegistry
from .types import Operation, Position, Response, utcnow

logger = logging.getLogger(__name__)


class RefreshRequester(Protocol):
    def request_refresh(self) -> None: ...


@dataclass
class AssignmentResult:
    """Outcome of a response or position change."""
    operation_id: str
    participant_id: str
    previous_status: Optional[ResponseStatus]
    status: Optional[ResponseStatus]
    previous_position: Optional[str] = None
    position: Optional[str] = None

    @property
    def changed(self) -> bool:
        return (
            self.previous_status != self.status
            or self.previous_position != self.position
        )

    @property
    def attending_delta(self) -> int:
        was = self.previous_status == ResponseStatus.attending
        now = self.status == ResponseStatus.attending
        return int(now) - int(was)


# Values a participant may submit; "pending" is only reached internally
SUBMITTABLE_RESPONSES = (
    ResponseStatus.attending,
    ResponseStatus.undecided,
    ResponseStatus.declined,
)


def parse_response(value) -> ResponseStatus:
    try:
        status = ResponseStatus(value)
    except ValueError:
        raise InvalidResponse(f"Unknown response '{value}'")
    if status not in SUBMITTABLE_RESPONSES:
        raise InvalidResponse(f"Response '{value}' cannot be set directly")
    return status


class AssignmentEngine:
    """Applies response/position transitions to operations in the registry."""

    def __init__(
        self,
        registry: OperationRegistry,
        roster: RefreshRequester | None = None,
    ):
        self.registry = registry
        self.roster = roster

    def _committed(self, operation: Operation) -> None:
        self.registry.save()
        if self.roster is not None:
            self.roster.request_refresh()

    def _leave_attending(self, operation: Operation, participant_id: str) -> None:
        operation.assignments.pop(participant_id, None)
        operation.attending_count = max(0, operation.attending_count - 1)

    def set_response(
        self,
        operation_id: str,
        participant_id: str,
        value,
        display_name: str = "",
    ) -> AssignmentResult:
        """Record attending/undecided/declined for a participant."""
        status = parse_response(value)
        operation = self.registry.require(operation_id)
        participant_id = str(participant_id)

        existing = operation.responses.get(participant_id)
        previous_status = existing.status if existing else None
        previous_position = operation.assignments.get(participant_id)

        if status == ResponseStatus.attending:
            # Already attending (with or without position): keep the position
            new_status = (
                previous_status
                if previous_status is not None and previous_status.is_attending
                else ResponseStatus.pending
            )
        else:
            new_status = status
            if previous_status == ResponseStatus.attending:
                self._leave_attending(operation, participant_id)
            else:
                operation.assignments.pop(participant_id, None)

        operation.responses[participant_id] = Response(
            status=new_status,
            display_name=display_name or (existing.display_name if existing else ""),
            responded_at=utcnow(),
        )

        result = AssignmentResult(
            operation_id=operation.operation_id,
            participant_id=participant_id,
            previous_status=previous_status,
            status=new_status,
            previous_position=previous_position,
            position=operation.assignments.get(participant_id),
        )
        logger.info(
            f"Operation {operation_id}: {participant_id} "
            f"{previous_status.value if previous_status else 'unset'} -> {new_status.value}"
        )
        self._committed(operation)
        return result

    def select_position(
        self,
        operation_id: str,
        participant_id: str,
        position_name: str,
        display_name: str = "",
    ) -> AssignmentResult:
        """
        Assign a participant to a position, moving them to ATTENDING.

        Raises:
            PositionNotFound: The operation has no such position.
            CapacityExceeded: The position is at its maximum occupancy.
        """
        operation = self.registry.require(operation_id)
        participant_id = str(participant_id)
        position = operation.get_position(position_name)
        if position is None:
            raise PositionNotFound(position_name)

        existing = operation.responses.get(participant_id)
        previous_status = existing.status if existing else None
        previous_position = operation.assignments.get(participant_id)

        if previous_position == position.name and previous_status == ResponseStatus.attending:
            return AssignmentResult(
                operation_id=operation.operation_id,
                participant_id=participant_id,
                previous_status=previous_status,
                status=previous_status,
                previous_position=previous_position,
                position=previous_position,
            )

        if position.max_slots is not None:
            occupied = operation.occupancy(position.name, exclude=participant_id)
            if occupied >= position.max_slots:
                raise CapacityExceeded(position.name, position.max_slots)

        operation.assignments[participant_id] = position.name
        if previous_status != ResponseStatus.attending:
            operation.attending_count += 1
        operation.responses[participant_id] = Response(
            status=ResponseStatus.attending,
            display_name=display_name or (existing.display_name if existing else ""),
            responded_at=utcnow(),
        )

        logger.info(
            f"Operation {operation_id}: {participant_id} assigned to {position.name}"
            + (f" (was {previous_position})" if previous_position else "")
        )
        self._committed(operation)
        return AssignmentResult(
            operation_id=operation.operation_id,
            participant_id=participant_id,
            previous_status=previous_status,
            status=ResponseStatus.attending,
            previous_position=previous_position,
            position=position.name,
        )

    def remove_assignment(self, operation_id: str, participant_id: str) -> AssignmentResult:
        """Clear a participant's position; they stay attending, awaiting a new one."""
        operation = self.registry.require(operation_id)
        participant_id = str(participant_id)
        existing = operation.responses.get(participant_id)
        previous_status = existing.status if existing else None
        previous_position = operation.assignments.get(participant_id)

        if previous_position is None:
            return AssignmentResult(
                operation_id=operation.operation_id,
                participant_id=participant_id,
                previous_status=previous_status,
                status=previous_status,
            )

        if previous_status == ResponseStatus.attending:
            self._leave_attending(operation, participant_id)
        else:
            operation.assignments.pop(participant_id, None)
        operation.responses[participant_id] = Response(
            status=ResponseStatus.pending,
            display_name=existing.display_name if existing else "",
            responded_at=utcnow(),
        )

        self._committed(operation)
        return AssignmentResult(
            operation_id=operation.operation_id,
            participant_id=participant_id,
            previous_status=previous_status,
            status=ResponseStatus.pending,
            previous_position=previous_position,
            position=None,
        )

    def edit_positions(self, operation_id: str, new_positions: list[Position]) -> list[str]:
        """
        Replace an operation's position list.

        Assignments to positions that no longer exist are deleted; the
        affected participants keep their attending response.

        Returns:
            Participant ids whose assignment was purged.

        Raises:
            InvalidPosition: Duplicate/empty names, negative limits, or a new
                limit below the number of participants who would keep that
                position.
        """
        operation = self.registry.require(operation_id)
        _validate_positions(operation, new_positions)

        names = {p.name for p in new_positions}
        purged = [
            participant_id
            for participant_id, assigned in operation.assignments.items()
            if assigned not in names
        ]
        for participant_id in purged:
            del operation.assignments[participant_id]

        operation.positions = list(new_positions)
        if purged:
            logger.info(
                f"Operation {operation_id}: purged assignments for removed positions: "
                f"{', '.join(purged)}"
            )
        self._committed(operation)
        return purged


def _validate_positions(operation: Operation, positions: list[Position]) -> None:
    seen = set()
    for position in positions:
        name = position.name.strip() if position.name else ""
        if not name:
            raise InvalidPosition("Position name cannot be empty")
        if name in seen:
            raise InvalidPosition(f"Duplicate position '{name}'")
        seen.add(name)
        if position.max_slots is None:
            continue
        if position.max_slots < 0:
            raise InvalidPosition(f"Position '{name}' has a negative limit")
        occupied = operation.occupancy(position.name)
        if occupied > position.max_slots:
            raise InvalidPosition(
                f"Position '{name}' already has {occupied} assigned, "
                f"cannot lower limit to {position.max_slots}"
            )
