"""
Ride management service - the request ledger.

This module handles:
    - Submitting ride requests
    - Accepting/declining requests (seat accounting)
    - Passenger withdrawals
    - Cascading ride cancellation to requests
"""

from .request_ledger import (
    submit,
    accept,
    decline,
    cancel_request,
    cancel_by_ride,
    decline_pending_for_ride,
    get_request,
    requests_for_ride,
    requests_for_passenger,
    REASON_DRIVER_DECLINED,
    REASON_RIDE_CANCELLED,
    REASON_RIDE_DEPARTED,
)

__all__ = [
    # Ledger operations
    "submit",
    "accept",
    "decline",
    "cancel_request",
    "cancel_by_ride",
    "decline_pending_for_ride",
    # Queries
    "get_request",
    "requests_for_ride",
    "requests_for_passenger",
    # Decline reasons
    "REASON_DRIVER_DECLINED",
    "REASON_RIDE_CANCELLED",
    "REASON_RIDE_DEPARTED",
]
