from django.db import models
from django.conf import settings


class Ride(models.Model):
    """A trip published by a driver, with seats passengers can request."""

    STATUS_OPEN = 'open'
    STATUS_FULL = 'full'
    STATUS_DEPARTED = 'departed'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_OPEN, 'Open'),
        (STATUS_FULL, 'Full'),
        (STATUS_DEPARTED, 'Departed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    # Statuses in which the ride still takes decisions on requests
    ACTIVE_STATUSES = (STATUS_OPEN, STATUS_FULL)

    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='published_rides'
    )

    # Route
    origin = models.CharField(max_length=255)
    destination = models.CharField(max_length=255)
    departure_at = models.DateTimeField(db_index=True)

    # Seats & pricing (price in minor currency units)
    total_seats = models.PositiveIntegerField()
    available_seats = models.PositiveIntegerField()
    price_per_seat = models.PositiveIntegerField(default=0)

    vehicle_type = models.CharField(max_length=50, blank=True)
    notes = models.TextField(blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_OPEN, db_index=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    departed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'rides'
        ordering = ['departure_at', 'id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_seats__gte=1),
                name='ride_total_seats_positive',
            ),
            models.CheckConstraint(
                condition=models.Q(available_seats__lte=models.F('total_seats')),
                name='ride_available_seats_within_total',
            ),
        ]

    def __str__(self):
        return f"Ride #{self.id} {self.origin} -> {self.destination} ({self.status})"


class RideRequest(models.Model):
    """A passenger's request for seats on a ride."""

    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_DECLINED = 'declined'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_DECLINED, 'Declined'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    ride = models.ForeignKey(
        Ride,
        on_delete=models.CASCADE,
        related_name='requests'
    )

    passenger = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='ride_requests'
    )

    seats_requested = models.PositiveIntegerField(default=1)
    message = models.TextField(blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    decline_reason = models.CharField(max_length=50, null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    decided_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'ride_requests'
        ordering = ['-created_at', '-id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(seats_requested__gte=1),
                name='request_seats_positive',
            ),
            # At most one pending request per passenger and ride
            models.UniqueConstraint(
                fields=['ride', 'passenger'],
                condition=models.Q(status='pending'),
                name='unique_pending_request_per_passenger',
            ),
        ]

    @property
    def is_pending(self):
        return self.status == self.STATUS_PENDING

    def __str__(self):
        return f"Request #{self.id} - Ride {self.ride_id} - {self.passenger} - {self.status}"
