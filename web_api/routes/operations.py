"""
Operation routes (read-only).

Endpoints:
- GET /api/operations?guild_id= - Active and scheduled operations
- GET /api/operations/{operation_id} - One operation with attendance summary
"""

import sys
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from core.operations.runtime import get_runtime
from core.operations.service import OperationService
from core.operations.types import Operation

router = APIRouter(prefix="/api", tags=["operations"])


def get_operation_service() -> OperationService:
    runtime = get_runtime()
    if runtime is None:
        raise HTTPException(503, "Operations service not ready")
    return runtime.service


def serialize_operation(operation: Operation) -> dict[str, Any]:
    data = operation.to_dict()
    next_reminder = operation.next_reminder_at()
    data["next_reminder_at"] = next_reminder.isoformat() if next_reminder else None
    data["positions"] = [
        {
            **position.to_dict(),
            "occupied": operation.occupancy(position.name),
        }
        for position in operation.positions
    ]
    return data


@router.get("/operations")
async def list_operations(
    guild_id: str | None = None,
    service: OperationService = Depends(get_operation_service),
) -> dict[str, Any]:
    """List operations, newest first, optionally for one community."""
    operations = sorted(
        service.list_operations(guild_id), key=lambda op: op.created_at, reverse=True
    )
    return {"operations": [serialize_operation(op) for op in operations]}


@router.get("/operations/{operation_id}")
async def get_operation(
    operation_id: str,
    service: OperationService = Depends(get_operation_service),
) -> dict[str, Any]:
    operation = service.get_operation(operation_id)
    if operation is None:
        raise HTTPException(404, "Operation not found")
    return {
        "operation": serialize_operation(operation),
        "attendance": service.attendance_summary(operation_id),
    }
