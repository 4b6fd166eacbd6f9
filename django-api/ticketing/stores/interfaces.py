"""Store interfaces (repository pattern).

Stores must be swappable and return domain models.
"""

from abc import ABC, abstractmethod
from ticketing.domain import (
    Event,
    EventId,
    Money,
    SalesStats,
    StockLevel,
    TierId,
    Transaction,
    TransactionId,
)


class DuplicateClientRefError(Exception):
    """Raised by TransactionStore.add when the idempotency key is taken."""

    def __init__(self, client_ref: str) -> None:
        super().__init__(client_ref)
        self.client_ref = client_ref


class InventoryStore(ABC):
    """Interface for event, tier and stock persistence.

    Mutating stock methods must be called inside a database transaction and
    must apply their change with a single conditional write, so that two
    concurrent callers on the same tier are serialized by the database.
    """

    @abstractmethod
    def get_event(self, event_id: EventId) -> Event | None:
        """Return an event with its tiers in display order, or None."""
        ...

    @abstractmethod
    def list_tier_ids(self, event_id: EventId | None = None) -> list[TierId]:
        """Return tier ids, optionally restricted to one event."""
        ...

    @abstractmethod
    def stock_levels_for_event(self, event_id: EventId) -> list[StockLevel]:
        """Return current stock of every tier of an event without locking."""
        ...

    @abstractmethod
    def stock_level(self, tier_id: TierId) -> StockLevel | None:
        """Return the current stock of a tier without locking."""
        ...

    @abstractmethod
    def lock_stock_level(self, tier_id: TierId) -> StockLevel | None:
        """Lock the tier row until the enclosing transaction ends."""
        ...

    @abstractmethod
    def decrement_if_available(self, tier_id: TierId, quantity: int) -> StockLevel | None:
        """Deduct quantity if at least that much is left.

        Returns the post-decrement level, or None when nothing was deducted
        (unknown tier or insufficient stock).
        """
        ...

    @abstractmethod
    def restore(self, tier_id: TierId, quantity: int) -> StockLevel | None:
        """Add quantity back, capped at total_stock. None if tier is unknown."""
        ...

    @abstractmethod
    def set_available(self, tier_id: TierId, value: int) -> StockLevel | None:
        """Force-set available stock. None if tier is unknown."""
        ...


class TransactionStore(ABC):
    """Interface for transaction persistence operations."""

    @abstractmethod
    def get(self, transaction_id: TransactionId) -> Transaction | None:
        ...

    @abstractmethod
    def get_by_client_ref(self, client_ref: str) -> Transaction | None:
        ...

    @abstractmethod
    def add(
        self,
        *,
        event_id: EventId,
        tier_id: TierId,
        purchaser: str,
        quantity: int,
        unit_price: Money,
        client_ref: str,
    ) -> Transaction:
        """Persist a confirmed transaction.

        Raises:
            DuplicateClientRefError: If client_ref is already committed.
        """
        ...

    @abstractmethod
    def mark_cancelled(self, transaction_id: TransactionId) -> Transaction | None:
        """Cancel a confirmed transaction.

        Returns the cancelled transaction, or None if it was not confirmed
        (missing or already cancelled). Must be a single conditional write.
        """
        ...

    @abstractmethod
    def delete(self, transaction_id: TransactionId) -> Transaction | None:
        """Delete a transaction and return what was deleted."""
        ...

    @abstractmethod
    def sold_quantity(self, tier_id: TierId) -> int:
        """Sum of quantities over non-cancelled transactions of a tier."""
        ...

    @abstractmethod
    def list_for_purchaser(self, purchaser: str) -> list[Transaction]:
        """Return a purchaser's transactions, newest first."""
        ...

    @abstractmethod
    def sales_stats(self) -> SalesStats:
        ...


class StockCache(ABC):
    """Read-optimized copy of remaining stock, allowed to drift."""

    @abstractmethod
    def get(self, tier_id: TierId, event_id: EventId | None = None) -> int | None:
        """Return the cached remaining count.

        With event_id, an entry cached for a different event is a miss.
        """
        ...

    @abstractmethod
    def set(self, level: StockLevel) -> bool:
        """Store a level unless a newer version is already cached.

        Returns True if the cache now holds this level.
        """
        ...

    @abstractmethod
    def overwrite(self, level: StockLevel) -> None:
        """Store a level regardless of the cached version."""
        ...

    @abstractmethod
    def delete(self, tier_id: TierId) -> None:
        ...
