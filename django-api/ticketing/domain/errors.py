"""Domain error codes for the ticketing module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    TIER_NOT_FOUND = "TIER_NOT_FOUND"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
    INVALID_ID = "INVALID_ID"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    INVALID_TRANSACTION_REF = "INVALID_TRANSACTION_REF"
    INVALID_STOCK_VALUE = "INVALID_STOCK_VALUE"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    DUPLICATE_REQUEST = "DUPLICATE_REQUEST"
    IDEMPOTENCY_CONFLICT = "IDEMPOTENCY_CONFLICT"
    ALREADY_CANCELLED = "ALREADY_CANCELLED"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class EventNotFoundError(DomainError):
    """Raised when an event is not found."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.EVENT_NOT_FOUND,
            message="Event not found",
        )
        self.event_id = event_id


class TierNotFoundError(DomainError):
    """Raised when a tier does not exist or belongs to another event."""

    def __init__(self, tier_id: str) -> None:
        super().__init__(
            code=ErrorCode.TIER_NOT_FOUND,
            message="Ticket tier not found",
        )
        self.tier_id = tier_id


class TransactionNotFoundError(DomainError):
    def __init__(self, transaction_id: str) -> None:
        super().__init__(
            code=ErrorCode.TRANSACTION_NOT_FOUND,
            message="Transaction not found",
        )
        self.transaction_id = transaction_id


class InvalidIdError(DomainError):
    """Raised when an identifier is not a valid UUID."""

    def __init__(self, field: str = "id") -> None:
        super().__init__(
            code=ErrorCode.INVALID_ID,
            message=f"Invalid {field} format",
        )
        self.field = field


class InvalidQuantityError(DomainError):
    """Raised when a purchase quantity is outside the allowed range."""

    def __init__(self, quantity: object, maximum: int) -> None:
        super().__init__(
            code=ErrorCode.INVALID_QUANTITY,
            message=f"Quantity must be between 1 and {maximum}",
        )
        self.quantity = quantity
        self.maximum = maximum


class InvalidTransactionRefError(DomainError):
    def __init__(self, max_length: int) -> None:
        super().__init__(
            code=ErrorCode.INVALID_TRANSACTION_REF,
            message=f"client_transaction_ref must be 1-{max_length} printable characters",
        )


class InvalidStockValueError(DomainError):
    """Raised when a resync value falls outside [0, total_stock]."""

    def __init__(self, value: int, total: int) -> None:
        super().__init__(
            code=ErrorCode.INVALID_STOCK_VALUE,
            message=f"Stock value must be between 0 and {total}",
        )
        self.value = value
        self.total = total


class InsufficientStockError(DomainError):
    """Ledger-level signal that a decrement would go below zero."""

    def __init__(self, tier_id: str, requested: int, available: int) -> None:
        super().__init__(
            code=ErrorCode.OUT_OF_STOCK,
            message="Not enough tickets left for this tier",
        )
        self.tier_id = tier_id
        self.requested = requested
        self.available = available


class OutOfStockError(DomainError):
    """Raised by the purchase engine when the ledger rejects a decrement."""

    def __init__(self, tier_id: str, available: int) -> None:
        super().__init__(
            code=ErrorCode.OUT_OF_STOCK,
            message="Tickets no longer available" if available == 0
            else f"Only {available} tickets remaining",
        )
        self.tier_id = tier_id
        self.available = available


class IdempotencyConflictError(DomainError):
    """Raised when a client_transaction_ref was committed by another purchaser."""

    def __init__(self, client_ref: str) -> None:
        super().__init__(
            code=ErrorCode.IDEMPOTENCY_CONFLICT,
            message="client_transaction_ref already used",
        )
        self.client_ref = client_ref


class AlreadyCancelledError(DomainError):
    """Raised on refund replay. Carries the cancelled transaction."""

    def __init__(self, transaction) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_CANCELLED,
            message="Transaction already cancelled",
        )
        self.transaction = transaction
