from ticketing.stores.django_store import DjangoInventoryStore, DjangoTransactionStore
from ticketing.stores.interfaces import (
    DuplicateClientRefError,
    InventoryStore,
    StockCache,
    TransactionStore,
)
from ticketing.stores.stock_cache import DjangoStockCache

__all__ = [
    "InventoryStore",
    "TransactionStore",
    "StockCache",
    "DuplicateClientRefError",
    "DjangoInventoryStore",
    "DjangoTransactionStore",
    "DjangoStockCache",
]
