"""
Delivery channels used by the notification dispatcher.

Each channel hands the event to its external collaborator and returns; slow
work (SMTP, push gateway) runs in Celery tasks so the dispatcher never waits
on it.
"""

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings

from .models import NotificationPreference

logger = logging.getLogger(__name__)


def user_group(user_id: int) -> str:
    """Personal channel group every connected socket of a user joins."""
    return f"user_{user_id}"


class InAppChannel:
    """Pushes the event to the user's open WebSocket connections."""
    name = NotificationPreference.CHANNEL_IN_APP

    def deliver(self, event):
        channel_layer = get_channel_layer()
        if channel_layer is None:
            logger.warning("No channel layer available for in-app notifications")
            return

        payload = {
            "type": "notification",
            "event": event.as_payload(),
        }
        logger.debug("WS -> user_%s: %s", event.recipient_id, payload)
        async_to_sync(channel_layer.group_send)(user_group(event.recipient_id), payload)


class EmailChannel:
    """Queues an email to the user."""
    name = NotificationPreference.CHANNEL_EMAIL

    def deliver(self, event):
        from .tasks import send_email_notification
        send_email_notification.delay(event.recipient_id, event.kind, event.message)


class PushChannel:
    """Queues a push notification through the configured push gateway."""
    name = NotificationPreference.CHANNEL_PUSH

    def deliver(self, event):
        if not getattr(settings, "PUSH_GATEWAY_URL", ""):
            logger.debug("PUSH_GATEWAY_URL not set, skipping push for user %s", event.recipient_id)
            return

        from .tasks import send_push_notification
        send_push_notification.delay(event.recipient_id, event.as_payload())
