"""Celery tasks delivering notifications to external channels."""

import logging

import requests
from celery import shared_task
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail

logger = logging.getLogger(__name__)

SUBJECTS = {
    "request_created": "New ride request",
    "request_accepted": "Your ride request was accepted",
    "request_declined": "Your ride request was declined",
    "request_cancelled": "A ride request was withdrawn",
    "message_received": "You have a new message",
}


@shared_task(bind=True, max_retries=3, default_retry_delay=30)
def send_email_notification(self, user_id: int, kind: str, message: str):
    """Email a notification to a user. Users without an address are skipped."""
    User = get_user_model()
    user = User.objects.filter(id=user_id).first()
    if not user or not user.email:
        logger.info("No email address for user %s, skipping %s", user_id, kind)
        return False

    try:
        send_mail(
            subject=SUBJECTS.get(kind, "Ride update"),
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[user.email],
        )
    except Exception as exc:
        logger.warning("Email to user %s failed: %s", user_id, exc)
        raise self.retry(exc=exc)
    return True


@shared_task(bind=True, max_retries=3, default_retry_delay=10)
def send_push_notification(self, user_id: int, payload: dict):
    """POST a notification to the push gateway."""
    try:
        response = requests.post(
            settings.PUSH_GATEWAY_URL,
            json={"user_id": user_id, "notification": payload},
            timeout=settings.PUSH_GATEWAY_TIMEOUT,
        )
        response.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("Push to user %s failed: %s", user_id, exc)
        raise self.retry(exc=exc)
    return True
