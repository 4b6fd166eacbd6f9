"""Read-side stock queries for an event's tiers."""

from ticketing.domain import Event, EventId, StockDelta, StockLevel, TierId
from ticketing.domain.errors import EventNotFoundError, TierNotFoundError
from ticketing.services.ids import parse_id
from ticketing.services.stock_ledger import StockLedger
from ticketing.stores.interfaces import InventoryStore, StockCache


class EventService:
    """Service for event and stock lookups."""

    def __init__(self, store: InventoryStore, ledger: StockLedger, cache: StockCache) -> None:
        self._store = store
        self._ledger = ledger
        self._cache = cache

    def get_event(self, event_id: str) -> Event:
        """Return an event by ID.

        Raises:
            InvalidIdError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist.
        """
        key = parse_id(EventId, event_id, "event_id")
        event = self._store.get_event(key)
        if event is None:
            raise EventNotFoundError(str(key))
        return event

    def get_stock(self, event_id: str) -> list[StockLevel]:
        """Return the ledger's current level of every tier of an event."""
        event = self.get_event(event_id)
        return self._ledger.snapshot(event.id)

    def get_tier_stock(self, event_id: str, tier_id: str) -> int:
        """Return remaining stock for one tier, preferring the fast cache.

        Raises:
            InvalidIdError: If an id is not a valid UUID.
            TierNotFoundError: If the tier does not belong to the event.
        """
        event_key = parse_id(EventId, event_id, "event_id")
        tier_key = parse_id(TierId, tier_id, "tier_id")
        cached = self._cache.get(tier_key, event_key)
        if cached is not None:
            return cached
        level = self._ledger.level(tier_key)
        if level is None or level.event_id != event_key:
            raise TierNotFoundError(str(tier_key))
        self._cache.set(level)
        return level.remaining

    def stock_snapshot(self, event_id: EventId) -> list[StockDelta]:
        """Snapshot handed to new stock subscribers."""
        return [StockDelta.from_level(level) for level in self._ledger.snapshot(event_id)]
