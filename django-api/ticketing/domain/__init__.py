from ticketing.domain.models import (
    Event,
    PurchaseReceipt,
    ResyncEntry,
    SalesStats,
    StockDelta,
    StockLevel,
    TicketTier,
    Transaction,
    TransactionStatus,
)
from ticketing.domain.value_objects import (
    EventId,
    Money,
    Quantity,
    StockCount,
    TierId,
    TransactionId,
)

__all__ = [
    "Event",
    "TicketTier",
    "Transaction",
    "TransactionStatus",
    "StockLevel",
    "StockDelta",
    "PurchaseReceipt",
    "ResyncEntry",
    "SalesStats",
    "EventId",
    "TierId",
    "TransactionId",
    "Money",
    "StockCount",
    "Quantity",
]
