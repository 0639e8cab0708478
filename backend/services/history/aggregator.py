"""
Rating & history aggregator.

Accepted requests become history entries once their ride completes, and
cancelled rides leave a cancelled entry for every passenger who had a seat.
Participants of a completed entry may rate each other once.
"""

import logging
from typing import Any, Dict, List, Optional

from django.db import IntegrityError, transaction
from django.db.models import Count, Q

from history.models import HistoryEntry, Rating
from rides.models import Ride, RideRequest
from ..exceptions import (
    AlreadyRatedError,
    InvalidStateError,
    NotFoundError,
    NotParticipantError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ROLE_PASSENGER = "passenger"
ROLE_DRIVER = "driver"


def _create_entry(ride_request: RideRequest, status: str) -> HistoryEntry:
    """Create the entry for a request, or return the one that already exists."""
    existing = HistoryEntry.objects.filter(request=ride_request).first()
    if existing:
        return existing

    try:
        with transaction.atomic():
            return HistoryEntry.objects.create(
                request=ride_request,
                ride_id=ride_request.ride_id,
                passenger_id=ride_request.passenger_id,
                driver_id=ride_request.ride.driver_id,
                status=status,
            )
    except IntegrityError:
        # Created concurrently by another caller
        return HistoryEntry.objects.get(request=ride_request)


@transaction.atomic
def complete(request_id: int) -> HistoryEntry:
    """
    Record an accepted request on a departed ride as a completed trip.

    Idempotent: completing the same request again returns the existing entry.

    Raises:
        NotFoundError: If the request does not exist
        InvalidStateError: If the request is not accepted or its ride has not departed
    """
    try:
        ride_request = RideRequest.objects.select_related("ride").get(id=request_id)
    except RideRequest.DoesNotExist:
        raise NotFoundError(f"Request {request_id} not found")

    existing = HistoryEntry.objects.filter(request=ride_request).first()
    if existing:
        return existing

    if ride_request.status != RideRequest.STATUS_ACCEPTED:
        raise InvalidStateError(f"Cannot complete - request is {ride_request.status}")
    if ride_request.ride.status != Ride.STATUS_DEPARTED:
        raise InvalidStateError(f"Cannot complete - ride is {ride_request.ride.status}")

    entry = _create_entry(ride_request, HistoryEntry.STATUS_COMPLETED)
    logger.info("Request %s completed as history entry %s", ride_request.id, entry.id)
    return entry


@transaction.atomic
def complete_ride(ride_id: int, driver=None) -> List[HistoryEntry]:
    """Complete every accepted request of a departed ride."""
    try:
        ride = Ride.objects.get(id=ride_id)
    except Ride.DoesNotExist:
        raise NotFoundError(f"Ride {ride_id} not found")

    if driver is not None and ride.driver_id != driver.id:
        raise NotParticipantError("Only the ride's driver can complete it")
    if ride.status != Ride.STATUS_DEPARTED:
        raise InvalidStateError(f"Cannot complete - ride is {ride.status}")

    accepted_ids = ride.requests.filter(
        status=RideRequest.STATUS_ACCEPTED
    ).order_by("id").values_list("id", flat=True)

    return [complete(request_id) for request_id in accepted_ids]


def record_cancellation(ride_request: RideRequest) -> HistoryEntry:
    """Record a trip that was booked but whose ride got cancelled."""
    entry = _create_entry(ride_request, HistoryEntry.STATUS_CANCELLED)
    logger.info("Request %s recorded as cancelled trip %s", ride_request.id, entry.id)
    return entry


@transaction.atomic
def rate(entry_id: int, rater, value: str) -> Rating:
    """
    Rate the other participant of a completed trip.

    Raises:
        ValidationError: If value is not positive or negative
        NotFoundError: If the entry does not exist
        NotParticipantError: If the rater was not on the trip
        InvalidStateError: If the trip was not completed
        AlreadyRatedError: If the rater already rated this entry
    """
    if value not in (Rating.POSITIVE, Rating.NEGATIVE):
        raise ValidationError("Rating must be 'positive' or 'negative'")

    try:
        entry = HistoryEntry.objects.get(id=entry_id)
    except HistoryEntry.DoesNotExist:
        raise NotFoundError(f"History entry {entry_id} not found")

    if rater.id not in entry.participant_ids():
        raise NotParticipantError("Only the trip's passenger or driver can rate it")
    if entry.status != HistoryEntry.STATUS_COMPLETED:
        raise InvalidStateError("Only completed trips can be rated")

    if Rating.objects.filter(entry=entry, rater=rater).exists():
        raise AlreadyRatedError("You already rated this trip")

    ratee_id = entry.driver_id if rater.id == entry.passenger_id else entry.passenger_id
    try:
        with transaction.atomic():
            rating = Rating.objects.create(
                entry=entry,
                rater=rater,
                ratee_id=ratee_id,
                value=value,
            )
    except IntegrityError:
        raise AlreadyRatedError("You already rated this trip")

    logger.info("User %s rated user %s %s on entry %s", rater.id, ratee_id, value, entry.id)
    return rating


def history(user, role: Optional[str] = None, status: Optional[str] = None) -> List[HistoryEntry]:
    """
    A user's trips, most recent first.

    Args:
        user: User model instance
        role: Optional 'passenger' or 'driver' to restrict which side the user was on
        status: Optional 'completed' or 'cancelled'
    """
    if role == ROLE_PASSENGER:
        qs = HistoryEntry.objects.filter(passenger=user)
    elif role == ROLE_DRIVER:
        qs = HistoryEntry.objects.filter(driver=user)
    elif role is None:
        qs = HistoryEntry.objects.filter(Q(passenger=user) | Q(driver=user))
    else:
        raise ValidationError("role must be 'passenger' or 'driver'")

    if status is not None:
        if status not in (HistoryEntry.STATUS_COMPLETED, HistoryEntry.STATUS_CANCELLED):
            raise ValidationError("status must be 'completed' or 'cancelled'")
        qs = qs.filter(status=status)

    return list(
        qs.select_related("ride", "passenger", "driver")
        .prefetch_related("ratings")
        .order_by("-created_at", "-id")
    )


def rating_summary(user_id: int) -> Dict[str, Any]:
    """Counts of ratings a user received and the share that were positive."""
    counts = Rating.objects.filter(ratee_id=user_id).aggregate(
        positive=Count("id", filter=Q(value=Rating.POSITIVE)),
        negative=Count("id", filter=Q(value=Rating.NEGATIVE)),
    )
    total = counts["positive"] + counts["negative"]
    return {
        "user_id": user_id,
        "positive": counts["positive"],
        "negative": counts["negative"],
        "total": total,
        "score": round(100 * counts["positive"] / total, 1) if total else None,
    }
