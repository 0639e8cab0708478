"""
Request ledger - passenger requests against rides and seat accounting.

Seats are not held while a request is pending; several pending requests may
together exceed a ride's capacity and the first one accepted wins. Every
operation that touches a ride's seats locks the ride row first (ride before
request, always), and the seat check-and-decrement itself is a single
conditional UPDATE.
"""

import logging
from typing import List, Optional

from django.db import transaction
from django.db.models import Case, CharField, F, Value, When
from django.utils import timezone

from rides.models import Ride, RideRequest
from ..exceptions import (
    CapacityError,
    DuplicateRequestError,
    InvalidStateError,
    NotFoundError,
    NotParticipantError,
    ValidationError,
)
from ..notifications import emit_on_commit, events

logger = logging.getLogger(__name__)

# Decline reasons
REASON_DRIVER_DECLINED = "driver_declined"
REASON_RIDE_CANCELLED = "ride_cancelled"
REASON_RIDE_DEPARTED = "ride_departed"


# ===================== Lookups =====================

def get_request(request_id: int) -> RideRequest:
    try:
        return RideRequest.objects.select_related("ride", "passenger").get(id=request_id)
    except RideRequest.DoesNotExist:
        raise NotFoundError(f"Request {request_id} not found")


def requests_for_ride(ride_id: int, status: Optional[str] = None) -> List[RideRequest]:
    """Requests on a ride, oldest first (the order a driver works through them)."""
    qs = RideRequest.objects.filter(ride_id=ride_id).select_related("passenger")
    if status:
        qs = qs.filter(status=status)
    return list(qs.order_by("created_at", "id"))


def requests_for_passenger(passenger, status: Optional[str] = None) -> List[RideRequest]:
    """A passenger's requests, most recent first."""
    qs = RideRequest.objects.filter(passenger=passenger).select_related("ride")
    if status:
        qs = qs.filter(status=status)
    return list(qs.order_by("-created_at", "-id"))


# ===================== Locking Helpers =====================

def _lock_ride(ride_id: int) -> Ride:
    try:
        return Ride.objects.select_for_update().get(id=ride_id)
    except Ride.DoesNotExist:
        raise NotFoundError(f"Ride {ride_id} not found")


def _lock_request(request_id: int):
    """Lock the request's ride, then the request itself."""
    ride_id = (
        RideRequest.objects.filter(id=request_id)
        .values_list("ride_id", flat=True)
        .first()
    )
    if ride_id is None:
        raise NotFoundError(f"Request {request_id} not found")

    ride = _lock_ride(ride_id)
    ride_request = RideRequest.objects.select_for_update().get(id=request_id)
    ride_request.ride = ride
    return ride, ride_request


def _check_driver(ride: Ride, driver) -> None:
    if driver is not None and ride.driver_id != driver.id:
        raise NotParticipantError("Only the ride's driver can decide on its requests")


def _reserve_seats(ride: Ride, seats: int) -> None:
    """
    Take seats from a ride in one conditional UPDATE.

    The row only changes if enough seats remain, so available_seats can never
    go negative even if the caller's copy of the ride is stale.
    """
    updated = Ride.objects.filter(id=ride.id, available_seats__gte=seats).update(
        available_seats=F("available_seats") - seats,
        status=Case(
            When(available_seats=seats, then=Value(Ride.STATUS_FULL)),
            default=F("status"),
            output_field=CharField(),
        ),
    )
    if not updated:
        raise CapacityError(f"Not enough seats left on ride {ride.id}")
    ride.refresh_from_db(fields=["available_seats", "status"])


def _release_seats(ride: Ride, seats: int) -> None:
    Ride.objects.filter(id=ride.id).update(available_seats=F("available_seats") + seats)
    ride.refresh_from_db(fields=["available_seats", "status"])


def _decline(ride_request: RideRequest, reason: str) -> None:
    ride_request.status = RideRequest.STATUS_DECLINED
    ride_request.decline_reason = reason
    ride_request.decided_at = timezone.now()
    ride_request.save(update_fields=["status", "decline_reason", "decided_at"])


# ===================== Passenger Operations =====================

@transaction.atomic
def submit(ride_id: int, passenger, seats: int = 1, message: str = "") -> RideRequest:
    """
    Request seats on a ride.

    Args:
        ride_id: ID of the ride
        passenger: User model instance (passenger)
        seats: Number of seats requested, at least 1
        message: Optional note for the driver

    Returns:
        The pending RideRequest

    Raises:
        ValidationError: If seats < 1 or the passenger drives this ride
        NotFoundError: If the ride does not exist
        CapacityError: If the ride is not open or has fewer seats available
        DuplicateRequestError: If the passenger already has a pending request on the ride
    """
    if seats is None or seats < 1:
        raise ValidationError("seats must be at least 1")

    ride = _lock_ride(ride_id)

    if ride.driver_id == passenger.id:
        raise ValidationError("You cannot request a seat on your own ride")

    if ride.status != Ride.STATUS_OPEN:
        raise CapacityError(f"Ride is {ride.status} and no longer takes requests")
    if seats > ride.available_seats:
        raise CapacityError(
            f"Requested {seats} seat(s) but only {ride.available_seats} available"
        )

    if RideRequest.objects.filter(
        ride=ride, passenger=passenger, status=RideRequest.STATUS_PENDING
    ).exists():
        raise DuplicateRequestError("You already have a pending request on this ride")

    ride_request = RideRequest.objects.create(
        ride=ride,
        passenger=passenger,
        seats_requested=seats,
        message=message or "",
        status=RideRequest.STATUS_PENDING,
    )

    logger.info(
        "Request %s: passenger %s asked for %s seat(s) on ride %s",
        ride_request.id, passenger.id, seats, ride.id,
    )
    emit_on_commit(events.request_created(ride_request))
    return ride_request


@transaction.atomic
def cancel_request(request_id: int, passenger) -> RideRequest:
    """Withdraw a pending request."""
    ride, ride_request = _lock_request(request_id)

    if ride_request.passenger_id != passenger.id:
        raise NotParticipantError("Only the requesting passenger can cancel this request")
    if not ride_request.is_pending:
        raise InvalidStateError(f"Cannot cancel - request is already {ride_request.status}")

    ride_request.status = RideRequest.STATUS_CANCELLED
    ride_request.decided_at = timezone.now()
    ride_request.save(update_fields=["status", "decided_at"])

    logger.info("Request %s cancelled by passenger %s", ride_request.id, passenger.id)
    emit_on_commit(events.request_cancelled(ride_request))
    return ride_request


# ===================== Driver Operations =====================

@transaction.atomic
def accept(request_id: int, driver=None) -> RideRequest:
    """
    Accept a pending request.

    Seats are taken from the ride and a conversation between driver and
    passenger is opened (or reused). Both happen in the same transaction as
    the status change.

    Args:
        request_id: ID of the request
        driver: Optional acting driver, must own the ride

    Returns:
        The accepted RideRequest

    Raises:
        InvalidStateError: If the request is not pending or the ride is not open/full
        CapacityError: If the ride no longer has enough available seats
    """
    from ..messaging import relay

    ride, ride_request = _lock_request(request_id)
    _check_driver(ride, driver)

    if not ride_request.is_pending:
        raise InvalidStateError(f"Cannot accept - request is already {ride_request.status}")
    if ride.status not in Ride.ACTIVE_STATUSES:
        raise InvalidStateError(f"Cannot accept - ride is {ride.status}")

    _reserve_seats(ride, ride_request.seats_requested)

    ride_request.status = RideRequest.STATUS_ACCEPTED
    ride_request.decided_at = timezone.now()
    ride_request.save(update_fields=["status", "decided_at"])

    conversation = relay.open_conversation(ride.driver_id, ride_request.passenger_id, ride=ride)

    logger.info(
        "Request %s accepted; ride %s has %s seat(s) left",
        ride_request.id, ride.id, ride.available_seats,
    )
    emit_on_commit(events.request_accepted(ride_request, conversation))
    return ride_request


@transaction.atomic
def decline(request_id: int, driver=None, reason: str = REASON_DRIVER_DECLINED) -> RideRequest:
    """Decline a pending request."""
    ride, ride_request = _lock_request(request_id)
    _check_driver(ride, driver)

    if not ride_request.is_pending:
        raise InvalidStateError(f"Cannot decline - request is already {ride_request.status}")

    _decline(ride_request, reason)

    logger.info("Request %s declined (%s)", ride_request.id, reason)
    emit_on_commit(events.request_declined(ride_request))
    return ride_request


# ===================== Ride-wide Operations =====================

def decline_pending_for_ride(ride: Ride, reason: str) -> List[RideRequest]:
    """
    Decline every pending request on a ride.

    Expects to run inside the caller's transaction with the ride locked.
    """
    pending = list(
        ride.requests.select_for_update().filter(status=RideRequest.STATUS_PENDING)
    )
    for ride_request in pending:
        ride_request.ride = ride
        _decline(ride_request, reason)
        emit_on_commit(events.request_declined(ride_request))

    if pending:
        logger.info("Declined %s pending request(s) on ride %s (%s)", len(pending), ride.id, reason)
    return pending


@transaction.atomic
def cancel_by_ride(ride_id: int, reason: str = REASON_RIDE_CANCELLED) -> List[RideRequest]:
    """
    Decline every pending and accepted request on a cancelled ride.

    Accepted requests give their seats back and are recorded as cancelled
    trips in the history.

    Returns:
        The requests that were declined
    """
    from ..history import aggregator

    ride = _lock_ride(ride_id)
    if ride.status != Ride.STATUS_CANCELLED:
        raise InvalidStateError(f"Ride {ride.id} is {ride.status}, not cancelled")

    live = list(
        ride.requests.select_for_update().filter(
            status__in=[RideRequest.STATUS_PENDING, RideRequest.STATUS_ACCEPTED]
        ).order_by("created_at", "id")
    )

    for ride_request in live:
        ride_request.ride = ride
        was_accepted = ride_request.status == RideRequest.STATUS_ACCEPTED

        _decline(ride_request, reason)

        if was_accepted:
            _release_seats(ride, ride_request.seats_requested)
            aggregator.record_cancellation(ride_request)

        emit_on_commit(events.request_declined(ride_request))

    logger.info("Ride %s cancelled; declined %s request(s)", ride.id, len(live))
    return live
