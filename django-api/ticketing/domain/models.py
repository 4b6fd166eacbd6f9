"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in ticketing/models.py (persistence layer).
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from ticketing.domain.value_objects import (
    EventId,
    Money,
    StockCount,
    TierId,
    TransactionId,
)


class TransactionStatus(Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class TicketTier:
    """Domain representation of a TicketTier."""

    id: TierId
    event_id: EventId
    name: str
    price: Money
    total_stock: StockCount
    available_stock: StockCount
    benefits: str
    version: int = 0


@dataclass(frozen=True)
class Event:
    """Domain representation of an Event."""

    id: EventId
    title: str
    category: str
    venue: str
    starts_at: datetime
    created_at: datetime
    tiers: tuple[TicketTier, ...] = ()


@dataclass(frozen=True)
class Transaction:
    """A committed purchase. Only the cancellation fields ever change."""

    id: TransactionId
    event_id: EventId
    tier_id: TierId
    purchaser: str
    quantity: int
    unit_price: Money
    total_amount: Money
    reference: str
    client_ref: str
    status: TransactionStatus
    created_at: datetime
    cancelled_at: datetime | None = None

    @property
    def is_cancelled(self) -> bool:
        return self.status is TransactionStatus.CANCELLED


@dataclass(frozen=True)
class StockLevel:
    """Ledger state of one tier right after a mutation or read."""

    tier_id: TierId
    event_id: EventId
    remaining: int
    total: int
    version: int


@dataclass(frozen=True)
class StockDelta:
    """Wire message announcing the new remaining count for a tier.

    ``remaining`` is absolute, so consumers replace rather than accumulate.
    ``version`` increases with every ledger mutation of the tier and lets
    subscribers discard anything older than what they have already seen.
    """

    tier_id: TierId
    remaining: int
    version: int

    @classmethod
    def from_level(cls, level: StockLevel) -> "StockDelta":
        return cls(tier_id=level.tier_id, remaining=level.remaining, version=level.version)

    def to_wire(self) -> dict:
        return {
            "tier_id": str(self.tier_id),
            "remaining": self.remaining,
            "version": self.version,
        }


@dataclass(frozen=True)
class PurchaseReceipt:
    """Outcome of a purchase call. ``replayed`` is set for idempotent replays."""

    transaction: Transaction
    replayed: bool = False


@dataclass(frozen=True)
class ResyncEntry:
    """One corrected tier in a resync report.

    ``previous_cached_value`` is the stored available_stock counter before
    correction; ``corrected_value`` is total_stock minus confirmed sales.
    """

    tier_id: TierId
    event_id: EventId
    previous_cached_value: int
    corrected_value: int

    def to_dict(self) -> dict:
        return {
            "tier_id": str(self.tier_id),
            "event_id": str(self.event_id),
            "previous_cached_value": self.previous_cached_value,
            "corrected_value": self.corrected_value,
        }


@dataclass(frozen=True)
class SalesStats:
    tickets_sold: int
    revenue: Money
    transactions: int
