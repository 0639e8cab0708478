"""
Messaging service - conversations between riders and drivers.
"""

from .relay import (
    open_conversation,
    get_conversation,
    conversations_for_user,
    messages,
    send,
    mark_delivered,
    mark_read,
    mark_conversation_read,
)

__all__ = [
    "open_conversation",
    "get_conversation",
    "conversations_for_user",
    "messages",
    "send",
    "mark_delivered",
    "mark_read",
    "mark_conversation_read",
]
