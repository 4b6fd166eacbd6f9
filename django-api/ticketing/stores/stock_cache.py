"""Fast stock cache backed by Django's cache framework.

In production the configured cache alias points at Redis; tests and local runs use
the in-process LocMemCache. Values are ``{"remaining", "version", "event_id"}``
dicts so an older level never replaces a newer one and a tier is only served
under the event it belongs to.
"""

from django.core.cache import caches

from ticketing.domain import EventId, StockLevel, TierId
from ticketing.stores.interfaces import StockCache


def stock_key(tier_id: TierId) -> str:
    return f"stock:tier:{tier_id}"


def _entry(level: StockLevel) -> dict:
    return {"remaining": level.remaining, "version": level.version, "event_id": str(level.event_id)}


class DjangoStockCache(StockCache):
    def __init__(self, alias: str = "default") -> None:
        self._alias = alias

    @property
    def _cache(self):
        return caches[self._alias]

    def get(self, tier_id: TierId, event_id: EventId | None = None) -> int | None:
        entry = self._cache.get(stock_key(tier_id))
        if entry is None:
            return None
        if event_id is not None and entry.get("event_id") != str(event_id):
            return None
        return entry["remaining"]

    def set(self, level: StockLevel) -> bool:
        key = stock_key(level.tier_id)
        entry = self._cache.get(key)
        if entry is not None and entry["version"] > level.version:
            return False
        self._cache.set(key, _entry(level), None)
        return True

    def overwrite(self, level: StockLevel) -> None:
        self._cache.set(stock_key(level.tier_id), _entry(level), None)

    def delete(self, tier_id: TierId) -> None:
        self._cache.delete(stock_key(tier_id))
