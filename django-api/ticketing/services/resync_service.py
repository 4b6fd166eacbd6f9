"""Admin resync job.

Recomputes each tier's remaining stock from its confirmed transactions and
repairs the stored counter and the fast cache where they drifted. Tiers are
processed one at a time, each under its own row lock, so live purchases on
other tiers keep flowing; a purchase committed on a tier after it was
processed is picked up by the next run.
"""

import logging

from django.db import transaction as db_transaction

from ticketing.domain import EventId, ResyncEntry, TierId
from ticketing.services.ids import parse_id
from ticketing.services.propagation import StockPropagator
from ticketing.services.stock_ledger import StockLedger
from ticketing.stores.interfaces import InventoryStore, StockCache, TransactionStore

logger = logging.getLogger(__name__)


class StockResyncService:
    def __init__(
        self,
        inventory: InventoryStore,
        transactions: TransactionStore,
        ledger: StockLedger,
        cache: StockCache,
        propagator: StockPropagator | None = None,
    ) -> None:
        self._inventory = inventory
        self._transactions = transactions
        self._ledger = ledger
        self._cache = cache
        self._propagator = propagator

    def resync_all(self, event_id: str | None = None) -> list[ResyncEntry]:
        """Resync every tier, or only the tiers of one event.

        Returns one entry per tier whose stored counter was corrected; an
        empty list means nothing had drifted.
        """
        event_key = parse_id(EventId, event_id, "event_id") if event_id is not None else None
        tier_ids = self._inventory.list_tier_ids(event_key)
        report = []
        for tier_id in tier_ids:
            entry = self.resync_tier(tier_id)
            if entry is not None:
                report.append(entry)
        logger.info("Stock resync finished: tiers=%d corrected=%d", len(tier_ids), len(report))
        return report

    def resync_tier(self, tier_id: TierId) -> ResyncEntry | None:
        with db_transaction.atomic():
            level = self._ledger.lock(tier_id)
            if level is None:
                # Deleted after the tier list was read.
                return None
            sold = self._transactions.sold_quantity(tier_id)
            expected = level.total - sold
            if expected < 0:
                logger.error(
                    "Tier %s has %d confirmed sales against total %d", tier_id, sold, level.total
                )
                expected = 0

            cached = self._cache.get(tier_id, level.event_id)
            if level.remaining == expected:
                if cached != expected:
                    logger.info(
                        "Stock cache repaired for tier %s: %s -> %s", tier_id, cached, expected
                    )
                    self._refresh_cache(level)
                return None

            corrected = self._ledger.resync(tier_id, expected)
            if self._propagator is not None:
                self._propagator.propagate_on_commit(corrected, overwrite=True)
            else:
                db_transaction.on_commit(lambda: self._cache.overwrite(corrected))

        return ResyncEntry(
            tier_id=tier_id,
            event_id=level.event_id,
            previous_cached_value=level.remaining,
            corrected_value=corrected.remaining,
        )

    def _refresh_cache(self, level) -> None:
        if self._propagator is not None:
            self._propagator.overwrite_cache_on_commit(level)
        else:
            db_transaction.on_commit(lambda: self._cache.overwrite(level))
