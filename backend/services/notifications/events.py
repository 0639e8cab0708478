"""Notification events emitted by the core services."""

from dataclasses import dataclass, field
from typing import Any, Dict

# Event kinds
REQUEST_CREATED = "request_created"
REQUEST_ACCEPTED = "request_accepted"
REQUEST_DECLINED = "request_declined"
REQUEST_CANCELLED = "request_cancelled"
MESSAGE_RECEIVED = "message_received"

# Preference categories (see notifications.models.NotificationPreference)
CATEGORY_RIDE_UPDATES = "ride_updates"
CATEGORY_RIDE_REQUESTS = "ride_requests"
CATEGORY_MESSAGES = "messages"


@dataclass(frozen=True)
class NotificationEvent:
    """One notification addressed to one user."""
    kind: str
    recipient_id: int
    category: str
    message: str = ""
    payload: Dict[str, Any] = field(default_factory=dict)

    def as_payload(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "category": self.category,
            "recipient_id": self.recipient_id,
            "message": self.message,
            **self.payload,
        }


# ---------------------- Event Builders ----------------------

def _request_payload(ride_request) -> Dict[str, Any]:
    ride = ride_request.ride
    return {
        "request_id": ride_request.id,
        "ride_id": ride_request.ride_id,
        "passenger_id": ride_request.passenger_id,
        "seats_requested": ride_request.seats_requested,
        "status": ride_request.status,
        "origin": ride.origin,
        "destination": ride.destination,
        "departure_at": ride.departure_at.isoformat(),
    }


def request_created(ride_request) -> NotificationEvent:
    return NotificationEvent(
        kind=REQUEST_CREATED,
        recipient_id=ride_request.ride.driver_id,
        category=CATEGORY_RIDE_REQUESTS,
        message=f"New request for {ride_request.seats_requested} seat(s) on your ride to {ride_request.ride.destination}.",
        payload=_request_payload(ride_request),
    )


def request_accepted(ride_request, conversation=None) -> NotificationEvent:
    payload = _request_payload(ride_request)
    if conversation is not None:
        payload["conversation_id"] = conversation.id
    return NotificationEvent(
        kind=REQUEST_ACCEPTED,
        recipient_id=ride_request.passenger_id,
        category=CATEGORY_RIDE_UPDATES,
        message=f"Your request for the ride to {ride_request.ride.destination} was accepted.",
        payload=payload,
    )


def request_declined(ride_request) -> NotificationEvent:
    payload = _request_payload(ride_request)
    payload["reason"] = ride_request.decline_reason
    return NotificationEvent(
        kind=REQUEST_DECLINED,
        recipient_id=ride_request.passenger_id,
        category=CATEGORY_RIDE_UPDATES,
        message=f"Your request for the ride to {ride_request.ride.destination} was declined.",
        payload=payload,
    )


def request_cancelled(ride_request) -> NotificationEvent:
    return NotificationEvent(
        kind=REQUEST_CANCELLED,
        recipient_id=ride_request.ride.driver_id,
        category=CATEGORY_RIDE_REQUESTS,
        message="A passenger withdrew their request.",
        payload=_request_payload(ride_request),
    )


def message_received(message, recipient_id: int) -> NotificationEvent:
    return NotificationEvent(
        kind=MESSAGE_RECEIVED,
        recipient_id=recipient_id,
        category=CATEGORY_MESSAGES,
        message=message.text[:140],
        payload={
            "conversation_id": message.conversation_id,
            "message_id": message.id,
            "sender_id": message.sender_id,
            "sequence": message.sequence,
            "sent_at": message.created_at.isoformat(),
        },
    )
