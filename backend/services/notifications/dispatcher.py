"""
Fan-out of notification events to external delivery channels.

A channel is any object with a ``name`` (matching a notification preference
channel) and a ``deliver(event)`` method. Channels are configured with the
``NOTIFICATION_CHANNELS`` setting as dotted import paths.

Delivery is fire-and-forget: a failing channel is logged and skipped, and
nothing here ever raises into the business operation that emitted the event.
"""

import logging
from typing import Iterable, List, Optional

from django.conf import settings
from django.db import transaction
from django.utils.module_loading import import_string

from .events import NotificationEvent

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Delivers each event to every registered channel the recipient has enabled."""

    def __init__(self, channels: Optional[Iterable] = None):
        self._channels: List = list(channels or [])

    @property
    def channels(self) -> List:
        return list(self._channels)

    def register(self, channel) -> None:
        self._channels.append(channel)

    def emit(self, event: NotificationEvent) -> int:
        """
        Deliver an event to all channels.

        Returns:
            Number of channels that accepted the event
        """
        delivered = 0
        for channel in self._channels:
            name = getattr(channel, "name", channel.__class__.__name__)
            try:
                if not self._is_enabled(event, name):
                    logger.debug("User %s muted %s on %s", event.recipient_id, event.category, name)
                    continue
                channel.deliver(event)
                delivered += 1
            except Exception:
                logger.exception(
                    "Channel %s failed to deliver %s to user %s",
                    name, event.kind, event.recipient_id,
                )
        return delivered

    def _is_enabled(self, event: NotificationEvent, channel_name: str) -> bool:
        from notifications.models import NotificationPreference
        return NotificationPreference.is_enabled(event.recipient_id, event.category, channel_name)


# ---------------------- Singleton Instance ----------------------

_dispatcher: Optional[NotificationDispatcher] = None


def build_dispatcher() -> NotificationDispatcher:
    """Build a dispatcher from the NOTIFICATION_CHANNELS setting."""
    channels = []
    for path in getattr(settings, "NOTIFICATION_CHANNELS", []):
        channels.append(import_string(path)())
    return NotificationDispatcher(channels)


def get_dispatcher() -> NotificationDispatcher:
    """Get singleton NotificationDispatcher instance."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = build_dispatcher()
    return _dispatcher


def reset_dispatcher(dispatcher: Optional[NotificationDispatcher] = None) -> None:
    """Replace the singleton (None rebuilds it from settings on next use)."""
    global _dispatcher
    _dispatcher = dispatcher


def emit(event: NotificationEvent) -> int:
    return get_dispatcher().emit(event)


def emit_on_commit(event: NotificationEvent) -> None:
    """
    Emit once the surrounding transaction commits.

    Delivery never runs while entity rows are locked, and nothing is sent for
    an operation that rolled back.
    """
    transaction.on_commit(lambda: emit(event))
