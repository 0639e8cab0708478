"""Per-user WebSocket consumer for notifications and message acknowledgements."""

import logging
from typing import Dict, Any

from channels.db import database_sync_to_async

from .base import BaseConsumer
from services import messaging

logger = logging.getLogger(__name__)


class NotificationConsumer(BaseConsumer):
    """
    WebSocket consumer shared by drivers and passengers.

    Handles:
        - Pushing notifications sent to the user's group
        - message_delivered / message_read acknowledgements from the client
    """

    async def on_connect(self):
        logger.info("User %s connected for notifications", self.user_id)
        await super().on_connect()

    async def on_disconnect(self, close_code):
        logger.info("User %s disconnected (code %s)", getattr(self, "user_id", None), close_code)

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        if msg_type == "message_delivered":
            await self._handle_ack(data, messaging.mark_delivered)
        elif msg_type == "message_read":
            await self._handle_ack(data, messaging.mark_read)
        elif msg_type == "ping":
            await self.send_success("pong")
        else:
            await self.send_error(f"Unknown message type: {msg_type}")

    # ---------------------- Message Handlers ----------------------

    async def _handle_ack(self, data: Dict[str, Any], mark):
        message_id = data.get("message_id")
        if not isinstance(message_id, int):
            await self.send_error("message_id is required")
            return

        message = await database_sync_to_async(mark)(message_id, self.user_id)
        await self.send_success(
            "message_status",
            message_id=message.id,
            conversation_id=message.conversation_id,
            status=message.status,
        )
