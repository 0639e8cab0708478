"""Per-user notification preferences (category x channel switches)."""

from typing import Dict

from django.db import transaction

from notifications.models import NotificationPreference
from ..exceptions import ValidationError

CATEGORIES = [value for value, _ in NotificationPreference.CATEGORY_CHOICES]
CHANNELS = [value for value, _ in NotificationPreference.CHANNEL_CHOICES]


def get_preferences(user) -> Dict[str, Dict[str, bool]]:
    """Full preference matrix for a user, defaults filled in as enabled."""
    matrix = {category: {channel: True for channel in CHANNELS} for category in CATEGORIES}
    for pref in NotificationPreference.objects.filter(user=user):
        matrix[pref.category][pref.channel] = pref.enabled
    return matrix


@transaction.atomic
def update_preferences(user, changes: Dict[str, Dict[str, bool]]) -> Dict[str, Dict[str, bool]]:
    """
    Apply a partial preference matrix, e.g. ``{"messages": {"email": False}}``.

    Raises:
        ValidationError: On unknown categories/channels or non-boolean values
    """
    if not isinstance(changes, dict):
        raise ValidationError("Preferences must be an object")

    for category, channels in changes.items():
        if category not in CATEGORIES:
            raise ValidationError(f"Unknown category: {category}")
        if not isinstance(channels, dict):
            raise ValidationError(f"Preferences for {category} must be an object")
        for channel, enabled in channels.items():
            if channel not in CHANNELS:
                raise ValidationError(f"Unknown channel: {channel}")
            if not isinstance(enabled, bool):
                raise ValidationError(f"{category}.{channel} must be true or false")

    for category, channels in changes.items():
        for channel, enabled in channels.items():
            NotificationPreference.objects.update_or_create(
                user=user,
                category=category,
                channel=channel,
                defaults={"enabled": enabled},
            )

    return get_preferences(user)
