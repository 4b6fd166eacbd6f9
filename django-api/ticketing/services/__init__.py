"""Process-wide service instances wired to the Django stores.

The broadcaster and propagator hold in-process state (subscriber registry,
worker thread), so every request in a process must share the same ones.
"""

from functools import lru_cache

from ticketing.conf import PurchasePolicy, ticketing_setting
from ticketing.services.broadcaster import StockBroadcaster, Subscription
from ticketing.services.event_service import EventService
from ticketing.services.propagation import StockPropagator
from ticketing.services.purchase_service import PurchaseService
from ticketing.services.resync_service import StockResyncService
from ticketing.services.stock_ledger import StockLedger
from ticketing.stores import DjangoInventoryStore, DjangoStockCache, DjangoTransactionStore

__all__ = [
    "StockBroadcaster",
    "Subscription",
    "EventService",
    "StockPropagator",
    "PurchaseService",
    "StockResyncService",
    "StockLedger",
    "get_broadcaster",
    "get_event_service",
    "get_propagator",
    "get_purchase_service",
    "get_resync_service",
    "get_stock_cache",
]


@lru_cache(maxsize=None)
def get_inventory_store():
    return DjangoInventoryStore()


@lru_cache(maxsize=None)
def get_transaction_store():
    return DjangoTransactionStore()


@lru_cache(maxsize=None)
def get_stock_cache():
    return DjangoStockCache(ticketing_setting("STOCK_CACHE_ALIAS"))


@lru_cache(maxsize=None)
def get_ledger() -> StockLedger:
    return StockLedger(get_inventory_store())


@lru_cache(maxsize=None)
def get_event_service() -> EventService:
    return EventService(get_inventory_store(), get_ledger(), get_stock_cache())


@lru_cache(maxsize=None)
def get_broadcaster() -> StockBroadcaster:
    return StockBroadcaster(snapshot_provider=get_event_service().stock_snapshot)


@lru_cache(maxsize=None)
def get_propagator() -> StockPropagator:
    return StockPropagator(
        get_broadcaster(),
        get_stock_cache(),
        retry_attempts=ticketing_setting("PROPAGATION_RETRY_ATTEMPTS"),
        retry_max_wait=ticketing_setting("PROPAGATION_RETRY_MAX_WAIT"),
    )


@lru_cache(maxsize=None)
def get_purchase_service() -> PurchaseService:
    return PurchaseService(
        get_inventory_store(),
        get_transaction_store(),
        get_ledger(),
        propagator=get_propagator(),
        policy=PurchasePolicy.from_settings(),
    )


@lru_cache(maxsize=None)
def get_resync_service() -> StockResyncService:
    return StockResyncService(
        get_inventory_store(),
        get_transaction_store(),
        get_ledger(),
        get_stock_cache(),
        propagator=get_propagator(),
    )
