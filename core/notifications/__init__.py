"""
Notification system for operation reminders and broadcasts.

Public API:
    NotificationFanout - paced bulk private-message delivery
    ReminderScheduler - arm/disarm/fire operation reminders
    get_message(type, channel, context) - render a message template
"""

from .errors import DeliveryError, MissingPermission, RateLimited, RecipientUnreachable
from .fanout import FanoutResult, NotificationFanout
from .scheduler import ReminderScheduler, create_scheduler, reminder_job_id
from .templates import get_message

__all__ = [
    "DeliveryError",
    "RateLimited",
    "RecipientUnreachable",
    "MissingPermission",
    "FanoutResult",
    "NotificationFanout",
    "ReminderScheduler",
    "create_scheduler",
    "reminder_job_id",
    "get_message",
]
