"""Recompute tier stock from confirmed transactions.

Meant for cron or an on-demand repair after cache or counter drift:

    python manage.py resync_stock [--event <uuid>]
"""

from django.core.management.base import BaseCommand, CommandError

from ticketing.domain.errors import DomainError
from ticketing.services import get_propagator, get_resync_service


class Command(BaseCommand):
    help = "Reconcile available stock with confirmed transactions"

    def add_arguments(self, parser):
        parser.add_argument("--event", dest="event_id", help="Only resync tiers of this event")

    def handle(self, *args, **options):
        try:
            report = get_resync_service().resync_all(options.get("event_id"))
        except DomainError as exc:
            raise CommandError(exc.message) from exc
        # Let cache writes and broadcasts finish before the process exits.
        get_propagator().wait_idle(timeout=30)

        for entry in report:
            self.stdout.write(
                f"tier {entry.tier_id}: {entry.previous_cached_value} -> {entry.corrected_value}"
            )
        self.stdout.write(self.style.SUCCESS(f"Resynced stock, {len(report)} tier(s) corrected"))
