"""Purchase engine - turns a purchase attempt into one durable result.

Services:
- Depend only on interfaces (stores) and the stock ledger
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors
"""

import logging

from django.db import transaction as db_transaction

from ticketing.conf import PurchasePolicy
from ticketing.domain import (
    EventId,
    PurchaseReceipt,
    SalesStats,
    TierId,
    Transaction,
    TransactionId,
)
from ticketing.domain.errors import (
    AlreadyCancelledError,
    EventNotFoundError,
    IdempotencyConflictError,
    InsufficientStockError,
    InvalidQuantityError,
    InvalidTransactionRefError,
    OutOfStockError,
    TierNotFoundError,
    TransactionNotFoundError,
)
from ticketing.services.ids import parse_id
from ticketing.services.propagation import StockPropagator
from ticketing.services.stock_ledger import StockLedger
from ticketing.stores.interfaces import (
    DuplicateClientRefError,
    InventoryStore,
    TransactionStore,
)

logger = logging.getLogger(__name__)


class PurchaseService:
    """Service for purchases, refunds and administrative purges."""

    def __init__(
        self,
        inventory: InventoryStore,
        transactions: TransactionStore,
        ledger: StockLedger,
        propagator: StockPropagator | None = None,
        policy: PurchasePolicy | None = None,
    ) -> None:
        self._inventory = inventory
        self._transactions = transactions
        self._ledger = ledger
        self._propagator = propagator
        self._policy = policy or PurchasePolicy()

    def purchase(
        self,
        event_id: str,
        tier_id: str,
        purchaser_identity: str,
        quantity: int,
        client_transaction_ref: str,
    ) -> PurchaseReceipt:
        """Buy tickets from one tier.

        Replaying a committed client_transaction_ref returns the original
        transaction with ``replayed=True`` and deducts nothing.

        Raises:
            InvalidIdError: If an id is not a valid UUID.
            InvalidQuantityError: If quantity is outside [1, max_quantity].
            InvalidTransactionRefError: If the idempotency key is malformed.
            IdempotencyConflictError: If another purchaser committed the key.
            EventNotFoundError: If the event does not exist.
            TierNotFoundError: If the tier does not belong to the event.
            OutOfStockError: If fewer than quantity tickets are left.
        """
        event_key = parse_id(EventId, event_id, "event_id")
        tier_key = parse_id(TierId, tier_id, "tier_id")
        self._check_quantity(quantity)
        self._check_client_ref(client_transaction_ref)

        existing = self._transactions.get_by_client_ref(client_transaction_ref)
        if existing is not None:
            return self._replay(existing, purchaser_identity)

        event = self._inventory.get_event(event_key)
        if event is None:
            raise EventNotFoundError(str(event_key))
        tier = next((t for t in event.tiers if t.id == tier_key), None)
        if tier is None:
            raise TierNotFoundError(str(tier_key))

        try:
            with db_transaction.atomic():
                try:
                    level = self._ledger.try_decrement(tier_key, quantity)
                except InsufficientStockError as exc:
                    logger.info(
                        "Purchase rejected, out of stock: tier=%s requested=%s available=%s",
                        tier_key,
                        quantity,
                        exc.available,
                    )
                    raise OutOfStockError(str(tier_key), exc.available) from exc
                transaction = self._transactions.add(
                    event_id=event_key,
                    tier_id=tier_key,
                    purchaser=purchaser_identity,
                    quantity=quantity,
                    unit_price=tier.price,
                    client_ref=client_transaction_ref,
                )
                if self._propagator is not None:
                    self._propagator.propagate_on_commit(level)
        except DuplicateClientRefError:
            # A concurrent request with the same key won; our decrement rolled back.
            committed = self._transactions.get_by_client_ref(client_transaction_ref)
            return self._replay(committed, purchaser_identity)

        logger.info(
            "Purchase committed: ref=%s purchaser=%s tier=%s qty=%s remaining=%s",
            transaction.reference,
            purchaser_identity,
            tier_key,
            quantity,
            level.remaining,
        )
        return PurchaseReceipt(transaction=transaction)

    def refund(self, transaction_id: str) -> Transaction:
        """Cancel a transaction and return its tickets to the tier.

        Raises:
            InvalidIdError: If transaction_id is not a valid UUID.
            TransactionNotFoundError: If the transaction does not exist.
            AlreadyCancelledError: If it was already cancelled.
        """
        key = parse_id(TransactionId, transaction_id, "transaction_id")
        with db_transaction.atomic():
            cancelled = self._transactions.mark_cancelled(key)
            if cancelled is None:
                existing = self._transactions.get(key)
                if existing is None:
                    raise TransactionNotFoundError(str(key))
                raise AlreadyCancelledError(existing)
            level = self._ledger.restore(cancelled.tier_id, cancelled.quantity)
            if self._propagator is not None:
                self._propagator.propagate_on_commit(level)
        logger.info(
            "Refund committed: ref=%s qty=%s remaining=%s",
            cancelled.reference,
            cancelled.quantity,
            level.remaining,
        )
        return cancelled

    def purge(self, transaction_id: str) -> Transaction:
        """Delete a transaction, restoring its stock unless already refunded.

        Raises:
            InvalidIdError: If transaction_id is not a valid UUID.
            TransactionNotFoundError: If the transaction does not exist.
        """
        key = parse_id(TransactionId, transaction_id, "transaction_id")
        with db_transaction.atomic():
            deleted = self._transactions.delete(key)
            if deleted is None:
                raise TransactionNotFoundError(str(key))
            if not deleted.is_cancelled:
                level = self._ledger.restore(deleted.tier_id, deleted.quantity)
                if self._propagator is not None:
                    self._propagator.propagate_on_commit(level)
        logger.warning("Transaction purged: ref=%s qty=%s", deleted.reference, deleted.quantity)
        return deleted

    def transactions_for(self, purchaser_identity: str) -> list[Transaction]:
        return self._transactions.list_for_purchaser(purchaser_identity)

    def sales_stats(self) -> SalesStats:
        return self._transactions.sales_stats()

    def _replay(self, existing: Transaction, purchaser_identity: str) -> PurchaseReceipt:
        if existing.purchaser != purchaser_identity:
            raise IdempotencyConflictError(existing.client_ref)
        logger.info("Purchase replayed: ref=%s client_ref=%s", existing.reference, existing.client_ref)
        return PurchaseReceipt(transaction=existing, replayed=True)

    def _check_quantity(self, quantity: object) -> None:
        if (
            isinstance(quantity, bool)
            or not isinstance(quantity, int)
            or not 1 <= quantity <= self._policy.max_quantity
        ):
            raise InvalidQuantityError(quantity, self._policy.max_quantity)

    def _check_client_ref(self, client_ref: object) -> None:
        if (
            not isinstance(client_ref, str)
            or not 1 <= len(client_ref) <= self._policy.client_ref_max_length
            or not client_ref.isprintable()
            or client_ref != client_ref.strip()
        ):
            raise InvalidTransactionRefError(self._policy.client_ref_max_length)
