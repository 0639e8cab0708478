from django.db import models
from django.conf import settings


class Conversation(models.Model):
    """Two-party thread, optionally tied to the ride that brought the users together."""

    # Participants are stored as an ordered pair so one row exists per unordered pair
    user_low = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='+'
    )
    user_high = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='+'
    )

    ride = models.ForeignKey(
        'rides.Ride',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='conversations'
    )

    last_sequence = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    last_message_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'conversations'
        ordering = ['-last_message_at', '-id']
        constraints = [
            models.UniqueConstraint(
                fields=['user_low', 'user_high'],
                name='unique_conversation_pair'
            ),
            models.CheckConstraint(
                condition=models.Q(user_low__lt=models.F('user_high')),
                name='conversation_pair_ordered'
            ),
        ]

    @property
    def participant_ids(self):
        return (self.user_low_id, self.user_high_id)

    def has_participant(self, user_id):
        return user_id in self.participant_ids

    def other_participant_id(self, user_id):
        return self.user_high_id if user_id == self.user_low_id else self.user_low_id

    def __str__(self):
        return f"Conversation #{self.id} ({self.user_low_id}, {self.user_high_id})"


class Message(models.Model):
    """A message in a conversation. Status only moves forward."""

    STATUS_SENT = 'sent'
    STATUS_DELIVERED = 'delivered'
    STATUS_READ = 'read'

    STATUS_CHOICES = [
        (STATUS_SENT, 'Sent'),
        (STATUS_DELIVERED, 'Delivered'),
        (STATUS_READ, 'Read'),
    ]

    # Position of each status in the forward-only progression
    STATUS_ORDER = [STATUS_SENT, STATUS_DELIVERED, STATUS_READ]

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name='messages'
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='sent_messages'
    )

    sequence = models.PositiveIntegerField()
    text = models.TextField(blank=True)
    attachments = models.JSONField(default=list, blank=True)

    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_SENT)

    # Timestamps
    created_at = models.DateTimeField()
    delivered_at = models.DateTimeField(null=True, blank=True)
    read_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'messages'
        ordering = ['created_at', 'sequence', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['conversation', 'sequence'],
                name='unique_message_sequence'
            )
        ]

    @classmethod
    def statuses_before(cls, status):
        """Statuses that can still advance to ``status``."""
        return cls.STATUS_ORDER[:cls.STATUS_ORDER.index(status)]

    def __str__(self):
        return f"Message #{self.id} in conversation {self.conversation_id} ({self.status})"
