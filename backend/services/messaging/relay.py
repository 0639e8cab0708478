"""
Messaging relay - two-party conversations with ordered, status-tracked messages.

Users are passed by id. Sends are serialised per conversation by locking the
conversation row, which also hands out the next sequence number.
"""

import logging
from typing import Any, Dict, List, Optional

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from messaging.models import Conversation, Message
from ..exceptions import NotFoundError, NotParticipantError, ValidationError
from ..notifications import emit_on_commit, events

logger = logging.getLogger(__name__)


def _ordered_pair(user_a_id: int, user_b_id: int):
    return (user_a_id, user_b_id) if user_a_id < user_b_id else (user_b_id, user_a_id)


def _clean_attachments(attachments) -> List[Dict[str, Any]]:
    if not attachments:
        return []
    if not isinstance(attachments, list):
        raise ValidationError("attachments must be a list")

    cleaned = []
    for item in attachments:
        if not isinstance(item, dict) or not isinstance(item.get("url"), str) or not item["url"]:
            raise ValidationError("each attachment needs a url")
        entry = {"url": item["url"]}
        if item.get("name"):
            entry["name"] = str(item["name"])
        cleaned.append(entry)
    return cleaned


# ===================== Conversations =====================

def open_conversation(user_a_id: int, user_b_id: int, ride=None) -> Conversation:
    """
    Return the conversation for this pair of users, creating it if needed.

    The pair is unordered: (A, B) and (B, A) share one conversation. A ride
    context is attached to an existing conversation that has none.
    """
    if user_a_id == user_b_id:
        raise ValidationError("A conversation needs two different users")

    User = get_user_model()
    found = User.objects.filter(id__in=[user_a_id, user_b_id]).count()
    if found != 2:
        raise NotFoundError("User not found")

    low, high = _ordered_pair(user_a_id, user_b_id)

    conversation = Conversation.objects.filter(user_low_id=low, user_high_id=high).first()
    if conversation is None:
        try:
            with transaction.atomic():
                conversation = Conversation.objects.create(
                    user_low_id=low,
                    user_high_id=high,
                    ride=ride,
                )
            logger.info("Conversation %s opened between users %s and %s", conversation.id, low, high)
            return conversation
        except IntegrityError:
            # Opened concurrently for the same pair
            conversation = Conversation.objects.get(user_low_id=low, user_high_id=high)

    if ride is not None and conversation.ride_id is None:
        conversation.ride = ride
        conversation.save(update_fields=["ride"])

    return conversation


def get_conversation(conversation_id: int, user_id: Optional[int] = None) -> Conversation:
    try:
        conversation = Conversation.objects.get(id=conversation_id)
    except Conversation.DoesNotExist:
        raise NotFoundError(f"Conversation {conversation_id} not found")

    if user_id is not None and not conversation.has_participant(user_id):
        raise NotParticipantError("You are not part of this conversation")
    return conversation


def conversations_for_user(user_id: int) -> List[Conversation]:
    """
    A user's conversations, most recently active first.

    Each conversation carries ``last_message`` and ``unread_count``
    (messages from the other participant not yet read).
    """
    conversations = list(
        Conversation.objects.filter(Q(user_low_id=user_id) | Q(user_high_id=user_id))
        .order_by(F("last_message_at").desc(nulls_last=True), "-id")
    )
    for conversation in conversations:
        conversation.last_message = (
            conversation.messages.order_by("-created_at", "-sequence").first()
        )
        conversation.unread_count = (
            conversation.messages.exclude(sender_id=user_id)
            .exclude(status=Message.STATUS_READ)
            .count()
        )
    return conversations


def messages(conversation_id: int, user_id: int, after_sequence: int = 0) -> List[Message]:
    """Messages of a conversation in order, optionally only those after a sequence number."""
    conversation = get_conversation(conversation_id, user_id)
    return list(
        conversation.messages.filter(sequence__gt=after_sequence).order_by("created_at", "sequence", "id")
    )


# ===================== Messages =====================

@transaction.atomic
def send(conversation_id: int, sender_id: int, text: str = "", attachments=None) -> Message:
    """
    Append a message to a conversation.

    Raises:
        NotFoundError: If the conversation does not exist
        NotParticipantError: If the sender is not one of the two participants
        ValidationError: If the message is empty or attachments are malformed
    """
    text = (text or "").strip()
    attachments = _clean_attachments(attachments)
    if not text and not attachments:
        raise ValidationError("Message must have text or attachments")

    try:
        conversation = Conversation.objects.select_for_update().get(id=conversation_id)
    except Conversation.DoesNotExist:
        raise NotFoundError(f"Conversation {conversation_id} not found")

    if not conversation.has_participant(sender_id):
        raise NotParticipantError("You are not part of this conversation")

    # Timestamps never run backwards within a conversation
    now = timezone.now()
    if conversation.last_message_at and now < conversation.last_message_at:
        now = conversation.last_message_at

    conversation.last_sequence += 1
    message = Message.objects.create(
        conversation=conversation,
        sender_id=sender_id,
        sequence=conversation.last_sequence,
        text=text,
        attachments=attachments,
        status=Message.STATUS_SENT,
        created_at=now,
    )

    conversation.last_message_at = now
    conversation.save(update_fields=["last_sequence", "last_message_at"])

    recipient_id = conversation.other_participant_id(sender_id)
    emit_on_commit(events.message_received(message, recipient_id))
    return message


@transaction.atomic
def _advance(message_id: int, target: str, user_id: Optional[int]) -> Message:
    """Move a message forward to ``target``; no-op if it is already there or past it."""
    try:
        message = Message.objects.select_related("conversation").get(id=message_id)
    except Message.DoesNotExist:
        raise NotFoundError(f"Message {message_id} not found")

    if user_id is not None:
        conversation = message.conversation
        if not conversation.has_participant(user_id) or message.sender_id == user_id:
            raise NotParticipantError("Only the recipient can update a message's status")

    now = timezone.now()
    changes = {"status": target}
    if target == Message.STATUS_DELIVERED:
        changes["delivered_at"] = now
    else:
        changes["read_at"] = now

    updated = Message.objects.filter(
        id=message.id,
        status__in=Message.statuses_before(target),
    ).update(**changes)

    if updated and target == Message.STATUS_READ:
        # Skipping straight from sent to read still records a delivery time
        Message.objects.filter(id=message.id, delivered_at__isnull=True).update(delivered_at=now)

    message.refresh_from_db()
    return message


def mark_delivered(message_id: int, user_id: Optional[int] = None) -> Message:
    return _advance(message_id, Message.STATUS_DELIVERED, user_id)


def mark_read(message_id: int, user_id: Optional[int] = None) -> Message:
    return _advance(message_id, Message.STATUS_READ, user_id)


def mark_conversation_read(conversation_id: int, user_id: int) -> int:
    """
    Mark every message the user received in a conversation as read.

    Returns:
        Number of messages that changed
    """
    conversation = get_conversation(conversation_id, user_id)
    now = timezone.now()

    Message.objects.filter(
        conversation=conversation,
        delivered_at__isnull=True,
    ).exclude(sender_id=user_id).exclude(status=Message.STATUS_READ).update(delivered_at=now)

    return Message.objects.filter(
        conversation=conversation,
        status__in=Message.statuses_before(Message.STATUS_READ),
    ).exclude(sender_id=user_id).update(status=Message.STATUS_READ, read_at=now)
