"""Stock ledger - the only writer of TicketTier.available_stock.

Every mutation is one conditional UPDATE inside a database transaction, so
the tier row lock is the single point of serialization per tier. A lock is
never held on more than one tier at a time.
"""

import logging

from django.db import transaction as db_transaction

from ticketing.domain import EventId, Quantity, StockLevel, TierId
from ticketing.domain.errors import (
    InsufficientStockError,
    InvalidStockValueError,
    TierNotFoundError,
)
from ticketing.stores.interfaces import InventoryStore

logger = logging.getLogger(__name__)


class StockLedger:
    """Authoritative remaining-stock counts per tier."""

    def __init__(self, store: InventoryStore) -> None:
        self._store = store

    def get_available(self, tier_id: TierId) -> int:
        """Return remaining stock without locking. Unknown tiers have 0."""
        level = self._store.stock_level(tier_id)
        if level is None:
            return 0
        return max(level.remaining, 0)

    def level(self, tier_id: TierId) -> StockLevel | None:
        return self._store.stock_level(tier_id)

    def lock(self, tier_id: TierId) -> StockLevel | None:
        """Lock a tier for the rest of the enclosing transaction."""
        return self._store.lock_stock_level(tier_id)

    def snapshot(self, event_id: EventId) -> list[StockLevel]:
        """Return current levels of every tier of an event."""
        return self._store.stock_levels_for_event(event_id)

    def try_decrement(self, tier_id: TierId, quantity: int) -> StockLevel:
        """Deduct quantity atomically or not at all.

        Raises:
            InsufficientStockError: If quantity exceeds what is left.
            TierNotFoundError: If the tier does not exist.
        """
        quantity = Quantity(quantity).value
        with db_transaction.atomic():
            level = self._store.decrement_if_available(tier_id, quantity)
            if level is not None:
                return level
            current = self._store.stock_level(tier_id)
        if current is None:
            raise TierNotFoundError(str(tier_id))
        raise InsufficientStockError(str(tier_id), quantity, current.remaining)

    def restore(self, tier_id: TierId, quantity: int) -> StockLevel:
        """Give back quantity, never exceeding total_stock."""
        quantity = Quantity(quantity).value
        with db_transaction.atomic():
            level = self._store.restore(tier_id, quantity)
        if level is None:
            raise TierNotFoundError(str(tier_id))
        return level

    def resync(self, tier_id: TierId, authoritative_value: int) -> StockLevel:
        """Force available stock to a recomputed value.

        Raises:
            InvalidStockValueError: If the value is outside [0, total_stock].
            TierNotFoundError: If the tier does not exist.
        """
        with db_transaction.atomic():
            current = self._store.lock_stock_level(tier_id)
            if current is None:
                raise TierNotFoundError(str(tier_id))
            if not 0 <= authoritative_value <= current.total:
                raise InvalidStockValueError(authoritative_value, current.total)
            level = self._store.set_available(tier_id, authoritative_value)
        logger.warning(
            "Stock resynced for tier %s: %s -> %s",
            tier_id,
            current.remaining,
            level.remaining,
        )
        return level
