"""
Notification dispatcher - fan-out of core events to delivery channels.
"""

from . import events
from .events import NotificationEvent
from .dispatcher import (
    NotificationDispatcher,
    build_dispatcher,
    get_dispatcher,
    reset_dispatcher,
    emit,
    emit_on_commit,
)
from .preferences import get_preferences, update_preferences

__all__ = [
    "events",
    "NotificationEvent",
    "NotificationDispatcher",
    "build_dispatcher",
    "get_dispatcher",
    "reset_dispatcher",
    "emit",
    "emit_on_commit",
    "get_preferences",
    "update_preferences",
]
