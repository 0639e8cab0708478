"""Celery tasks for ride-related background processing."""

from celery import shared_task
import logging

logger = logging.getLogger(__name__)


@shared_task
def depart_due_rides_task():
    """
    Periodic sweep (celery beat) marking rides past their departure time as
    departed, which also declines their remaining pending requests.
    """
    from services.catalog import depart_due_rides

    departed = depart_due_rides()
    if departed:
        logger.info(f"Marked {departed} ride(s) as departed")
    return departed
