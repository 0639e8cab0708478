from django.db import models
from django.conf import settings


class NotificationPreference(models.Model):
    """Per-user opt-out switch for one notification category on one channel.

    A missing row means the category is enabled on that channel.
    """

    CATEGORY_RIDE_UPDATES = 'ride_updates'
    CATEGORY_RIDE_REQUESTS = 'ride_requests'
    CATEGORY_MESSAGES = 'messages'

    CATEGORY_CHOICES = [
        (CATEGORY_RIDE_UPDATES, 'Ride Updates'),
        (CATEGORY_RIDE_REQUESTS, 'Ride Requests'),
        (CATEGORY_MESSAGES, 'New Messages'),
    ]

    CHANNEL_IN_APP = 'in_app'
    CHANNEL_EMAIL = 'email'
    CHANNEL_PUSH = 'push'

    CHANNEL_CHOICES = [
        (CHANNEL_IN_APP, 'In-App'),
        (CHANNEL_EMAIL, 'Email'),
        (CHANNEL_PUSH, 'Push'),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notification_preferences'
    )
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES)
    channel = models.CharField(max_length=10, choices=CHANNEL_CHOICES)
    enabled = models.BooleanField(default=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'notification_preferences'
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'category', 'channel'],
                name='unique_notification_preference'
            )
        ]

    @classmethod
    def is_enabled(cls, user_id, category, channel):
        enabled = cls.objects.filter(
            user_id=user_id, category=category, channel=channel
        ).values_list('enabled', flat=True).first()
        return True if enabled is None else enabled

    def __str__(self):
        state = 'on' if self.enabled else 'off'
        return f"{self.user} {self.category}/{self.channel}: {state}"
