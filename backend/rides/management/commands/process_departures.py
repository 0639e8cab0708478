from django.core.management.base import BaseCommand
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from services.catalog import depart_due_rides


class Command(BaseCommand):
    help = "Mark rides whose departure time has passed as departed and decline their pending requests."

    def add_arguments(self, parser):
        parser.add_argument(
            "--now",
            type=str,
            default=None,
            help="ISO timestamp to treat as the current time (default: now).",
        )

    def handle(self, *args, **options):
        now = timezone.now()
        if options["now"]:
            now = parse_datetime(options["now"])
            if now is None:
                self.stderr.write(self.style.ERROR(f"Invalid timestamp: {options['now']}"))
                return
            if timezone.is_naive(now):
                now = timezone.make_aware(now)

        departed = depart_due_rides(now)

        self.stdout.write(
            self.style.SUCCESS(f"Marked {departed} ride(s) as departed.")
        )
