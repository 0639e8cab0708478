from django.core.management.base import BaseCommand
from django.utils import timezone
from datetime import timedelta
from rides.models import RideRequest
import logging

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Delete old declined/cancelled ride requests that never became trips."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=30,
            help="Delete requests decided more than this many days ago (default: 30).",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be deleted without actually deleting.",
        )

    def handle(self, *args, **options):
        days = options["days"]
        dry_run = options["dry_run"]
        cutoff = timezone.now() - timedelta(days=days)

        # Requests with a history entry are part of a trip record and stay
        old_requests = RideRequest.objects.filter(
            decided_at__lt=cutoff,
            status__in=[RideRequest.STATUS_DECLINED, RideRequest.STATUS_CANCELLED],
            history_entry__isnull=True,
        )
        count = old_requests.count()

        if dry_run:
            self.stdout.write(
                self.style.WARNING(
                    f"DRY RUN: Would delete {count} old requests decided more than {days} days ago."
                )
            )
        else:
            old_requests.delete()
            logger.info(f"Cleaned up {count} old ride requests")
            self.stdout.write(
                self.style.SUCCESS(
                    f"Deleted {count} old requests decided more than {days} days ago."
                )
            )
