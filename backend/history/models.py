from django.db import models
from django.conf import settings


class HistoryEntry(models.Model):
    """Final record of a passenger's trip, created when the ride completes or is cancelled."""

    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    request = models.OneToOneField(
        'rides.RideRequest',
        on_delete=models.CASCADE,
        related_name='history_entry'
    )
    ride = models.ForeignKey(
        'rides.Ride',
        on_delete=models.CASCADE,
        related_name='history_entries'
    )
    passenger = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='passenger_history'
    )
    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='driver_history'
    )

    status = models.CharField(max_length=20, choices=STATUS_CHOICES)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'history_entries'
        ordering = ['-created_at', '-id']
        verbose_name_plural = 'history entries'

    def participant_ids(self):
        return (self.passenger_id, self.driver_id)

    def __str__(self):
        return f"History #{self.id} - Ride {self.ride_id} - {self.status}"


class Rating(models.Model):
    """Thumbs up/down left by one participant of a completed trip for the other."""

    POSITIVE = 'positive'
    NEGATIVE = 'negative'

    VALUE_CHOICES = [
        (POSITIVE, 'Positive'),
        (NEGATIVE, 'Negative'),
    ]

    entry = models.ForeignKey(
        HistoryEntry,
        on_delete=models.CASCADE,
        related_name='ratings'
    )
    rater = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='ratings_given'
    )
    ratee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='ratings_received'
    )

    value = models.CharField(max_length=10, choices=VALUE_CHOICES)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'ratings'
        constraints = [
            models.UniqueConstraint(
                fields=['entry', 'rater'],
                name='unique_rating_per_rater'
            )
        ]

    def __str__(self):
        return f"Rating #{self.id} - {self.rater} -> {self.ratee}: {self.value}"
