"""
Core business logic - platform-agnostic.
Can be used by Discord bot, web API, or any other interface.
"""

from .enums import OperationState, ResponseStatus

__all__ = [
    "OperationState",
    "ResponseStatus",
]
