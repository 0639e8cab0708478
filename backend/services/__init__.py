"""
Services package - Business logic layer.

This package contains all business logic services that operate on Django models
but are decoupled from the HTTP/WebSocket layer.

Modules:
    - catalog: Ride publishing, search and departure/cancellation
    - ride_management: Request ledger (submit/accept/decline, seat accounting)
    - history: Completed/cancelled trips and ratings
    - notifications: Event fan-out to delivery channels
    - messaging: Conversations and message status tracking
"""

from . import catalog, ride_management, history, notifications, messaging
from .exceptions import (
    RideshareError,
    ValidationError,
    NotFoundError,
    CapacityError,
    InvalidStateError,
    DuplicateRequestError,
    AlreadyRatedError,
    NotParticipantError,
)

__all__ = [
    # Services
    "catalog",
    "ride_management",
    "history",
    "notifications",
    "messaging",
    # Exceptions
    "RideshareError",
    "ValidationError",
    "NotFoundError",
    "CapacityError",
    "InvalidStateError",
    "DuplicateRequestError",
    "AlreadyRatedError",
    "NotParticipantError",
]
