"""Exceptions raised by the operations core."""


class OperationError(Exception):
    """Base exception for operation validation errors."""
    pass


class OperationNotFound(OperationError):
    """No active or scheduled operation with this id."""

    def __init__(self, operation_id: str):
        self.operation_id = operation_id
        super().__init__(f"Operation {operation_id} not found")


class PositionNotFound(OperationError):
    """The requested position is not defined on the operation."""

    def __init__(self, position: str):
        self.position = position
        super().__init__(f"Position '{position}' does not exist")


class CapacityExceeded(OperationError):
    """The requested position is already at its maximum occupancy."""

    def __init__(self, position: str, max_slots: int):
        self.position = position
        self.max_slots = max_slots
        super().__init__(f"Position '{position}' is full ({max_slots}/{max_slots})")


class InvalidResponse(OperationError):
    """Unknown response value or a transition the state machine forbids."""
    pass


class InvalidLeadTime(OperationError):
    """Reminder lead time is negative or not a number."""
    pass


class StoreWriteError(Exception):
    """Writing a collection to disk failed before the atomic rename."""
    pass


class InvalidPosition(OperationError):
    """Position definitions are malformed or would break an occupancy limit."""
    pass
