"""Django signals keeping the fast stock cache in step with the catalog.

Ledger writes go through queryset updates and never fire these; they are
propagated by the StockPropagator instead.
"""

from django.db import transaction as db_transaction
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from ticketing.domain import EventId, StockLevel, TierId
from ticketing.models import TicketTier
from ticketing.services import get_stock_cache


@receiver(post_save, sender=TicketTier)
def hydrate_stock_cache(sender, instance, created, **kwargs):
    """Seed the cache when a tier is created."""
    if not created:
        return
    level = StockLevel(
        tier_id=TierId(instance.pk),
        event_id=EventId(instance.event_id),
        remaining=instance.available_stock,
        total=instance.total_stock,
        version=instance.version,
    )
    db_transaction.on_commit(lambda: get_stock_cache().set(level))


@receiver(post_delete, sender=TicketTier)
def evict_stock_cache(sender, instance, **kwargs):
    """Drop the cached count when a tier is deleted."""
    tier_id = TierId(instance.pk)
    db_transaction.on_commit(lambda: get_stock_cache().delete(tier_id))
