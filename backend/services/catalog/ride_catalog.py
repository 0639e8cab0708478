"""
Ride catalog - publishing, searching and closing driver-published rides.

Seat counts are never touched here except through the request ledger.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from django.db import transaction
from django.utils import timezone

from rides.models import Ride
from ..exceptions import (
    InvalidStateError,
    NotFoundError,
    NotParticipantError,
    ValidationError,
)

logger = logging.getLogger(__name__)


@dataclass
class RideFilter:
    """Search predicates. Unset fields match every ride."""
    origin_contains: Optional[str] = None
    destination_contains: Optional[str] = None
    departure_after: Optional[datetime] = None
    departure_before: Optional[datetime] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    min_seats: int = 1

    def validate(self):
        if self.min_seats is None or self.min_seats < 1:
            raise ValidationError("min_seats must be at least 1")
        if self.min_price is not None and self.min_price < 0:
            raise ValidationError("min_price cannot be negative")
        if (
            self.min_price is not None
            and self.max_price is not None
            and self.min_price > self.max_price
        ):
            raise ValidationError("min_price cannot exceed max_price")
        if (
            self.departure_after is not None
            and self.departure_before is not None
            and self.departure_after > self.departure_before
        ):
            raise ValidationError("departure_after cannot be later than departure_before")


def publish(
    driver,
    origin: str,
    destination: str,
    departure_at: datetime,
    total_seats: int,
    price_per_seat: int = 0,
    vehicle_type: str = "",
    notes: str = "",
) -> Ride:
    """
    Publish a new ride offer.

    Args:
        driver: User model instance (driver)
        origin: Where the ride starts
        destination: Where the ride ends
        departure_at: Departure timestamp (timezone aware)
        total_seats: Seats offered, at least 1
        price_per_seat: Price in minor currency units, not negative

    Returns:
        The created Ride, open with every seat available

    Raises:
        ValidationError: If any field is malformed
    """
    origin = (origin or "").strip()
    destination = (destination or "").strip()

    if not origin or not destination:
        raise ValidationError("origin and destination are required")
    if total_seats is None or total_seats < 1:
        raise ValidationError("total_seats must be at least 1")
    if price_per_seat is None or price_per_seat < 0:
        raise ValidationError("price_per_seat cannot be negative")
    if departure_at is None:
        raise ValidationError("departure_at is required")
    if timezone.is_naive(departure_at):
        departure_at = timezone.make_aware(departure_at)

    ride = Ride.objects.create(
        driver=driver,
        origin=origin,
        destination=destination,
        departure_at=departure_at,
        total_seats=total_seats,
        available_seats=total_seats,
        price_per_seat=price_per_seat,
        vehicle_type=vehicle_type or "",
        notes=notes or "",
        status=Ride.STATUS_OPEN,
    )
    logger.info("Ride %s published by driver %s (%s seats)", ride.id, driver.id, total_seats)
    return ride


def search(ride_filter: Optional[RideFilter] = None) -> List[Ride]:
    """
    Find open rides matching every provided predicate.

    Ordered by departure time, ties broken by ride id.
    """
    ride_filter = ride_filter or RideFilter()
    ride_filter.validate()

    qs = Ride.objects.filter(
        status=Ride.STATUS_OPEN,
        available_seats__gte=ride_filter.min_seats,
    )

    if ride_filter.origin_contains:
        qs = qs.filter(origin__icontains=ride_filter.origin_contains.strip())
    if ride_filter.destination_contains:
        qs = qs.filter(destination__icontains=ride_filter.destination_contains.strip())
    if ride_filter.departure_after is not None:
        qs = qs.filter(departure_at__gte=ride_filter.departure_after)
    if ride_filter.departure_before is not None:
        qs = qs.filter(departure_at__lte=ride_filter.departure_before)
    if ride_filter.min_price is not None:
        qs = qs.filter(price_per_seat__gte=ride_filter.min_price)
    if ride_filter.max_price is not None:
        qs = qs.filter(price_per_seat__lte=ride_filter.max_price)

    return list(qs.select_related("driver").order_by("departure_at", "id"))


def get_ride(ride_id: int) -> Ride:
    try:
        return Ride.objects.select_related("driver").get(id=ride_id)
    except Ride.DoesNotExist:
        raise NotFoundError(f"Ride {ride_id} not found")


def rides_for_driver(driver, status: Optional[str] = None) -> List[Ride]:
    """Rides published by a driver, soonest departure first."""
    qs = Ride.objects.filter(driver=driver)
    if status:
        qs = qs.filter(status=status)
    return list(qs.order_by("departure_at", "id"))


def _lock_ride(ride_id: int) -> Ride:
    try:
        return Ride.objects.select_for_update().get(id=ride_id)
    except Ride.DoesNotExist:
        raise NotFoundError(f"Ride {ride_id} not found")


def _check_owner(ride: Ride, driver) -> None:
    if driver is not None and ride.driver_id != driver.id:
        raise NotParticipantError("Only the ride's driver can do this")


@transaction.atomic
def mark_departed(ride_id: int, driver=None) -> Ride:
    """
    Mark an open or full ride as departed.

    Pending requests can no longer be accepted, so they are declined.
    """
    from ..ride_management import request_ledger

    ride = _lock_ride(ride_id)
    _check_owner(ride, driver)

    if ride.status not in Ride.ACTIVE_STATUSES:
        raise InvalidStateError(f"Cannot depart - ride is {ride.status}")

    ride.status = Ride.STATUS_DEPARTED
    ride.departed_at = timezone.now()
    ride.save(update_fields=["status", "departed_at"])

    request_ledger.decline_pending_for_ride(ride, reason=request_ledger.REASON_RIDE_DEPARTED)

    logger.info("Ride %s departed", ride.id)
    return ride


@transaction.atomic
def cancel(ride_id: int, driver=None) -> Ride:
    """
    Cancel an open or full ride and decline every live request on it.
    """
    from ..ride_management import request_ledger

    ride = _lock_ride(ride_id)
    _check_owner(ride, driver)

    if ride.status not in Ride.ACTIVE_STATUSES:
        raise InvalidStateError(f"Cannot cancel - ride is {ride.status}")

    ride.status = Ride.STATUS_CANCELLED
    ride.cancelled_at = timezone.now()
    ride.save(update_fields=["status", "cancelled_at"])

    request_ledger.cancel_by_ride(ride.id)

    logger.info("Ride %s cancelled", ride.id)
    return ride


def depart_due_rides(now: Optional[datetime] = None) -> int:
    """
    Mark every open/full ride whose departure time has passed as departed.

    Returns:
        Number of rides marked departed
    """
    now = now or timezone.now()
    due_ids = list(
        Ride.objects.filter(
            status__in=Ride.ACTIVE_STATUSES,
            departure_at__lte=now,
        ).values_list("id", flat=True)
    )

    departed = 0
    for ride_id in due_ids:
        try:
            mark_departed(ride_id)
            departed += 1
        except InvalidStateError:
            # Cancelled or departed by its driver in the meantime
            logger.info("Ride %s no longer active, skipping departure", ride_id)
    return departed
