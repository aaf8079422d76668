from django.core.management.base import BaseCommand

from apps.bookings.repositories import AvailabilityIndexRepository
from apps.campgrounds.models import Campsite


class Command(BaseCommand):
    help = "Re-derives campsite booked date ranges from confirmed and completed bookings"

    def add_arguments(self, parser):
        parser.add_argument(
            "campsite_ids",
            nargs="*",
            type=int,
            help="Campsites to rebuild (all campsites when omitted)",
        )

    def handle(self, *args, **options):
        campsite_ids = options["campsite_ids"] or list(
            Campsite.objects.order_by("pk").values_list("pk", flat=True)
        )
        repo = AvailabilityIndexRepository()

        rebuilt = 0
        for campsite_id in campsite_ids:
            index = repo.rebuild(campsite_id)
            if index is None:
                self.stdout.write(self.style.WARNING(f"Campsite {campsite_id} not found, skipping"))
                continue
            rebuilt += 1
            self.stdout.write(
                f"Campsite {campsite_id}: {len(index.reservations)} reservation(s)"
            )

        self.stdout.write(self.style.SUCCESS(f"Rebuilt availability for {rebuilt} campsite(s)"))
