"""Django ORM implementations of the ticketing stores."""

import secrets
from decimal import Decimal

from django.db import IntegrityError
from django.db import transaction as db_transaction
from django.db.models import Count, F, IntegerField, Q, Sum
from django.db.models.functions import Coalesce, Least
from django.utils import timezone

from ticketing import models
from ticketing.domain import (
    Event,
    EventId,
    Money,
    SalesStats,
    StockCount,
    StockLevel,
    TicketTier,
    TierId,
    Transaction,
    TransactionId,
    TransactionStatus,
)
from ticketing.stores.interfaces import (
    DuplicateClientRefError,
    InventoryStore,
    TransactionStore,
)

_LEVEL_FIELDS = ("id", "event_id", "available_stock", "total_stock", "version")


def _to_tier(row: models.TicketTier) -> TicketTier:
    return TicketTier(
        id=TierId(row.id),
        event_id=EventId(row.event_id),
        name=row.name,
        price=Money(row.price),
        total_stock=StockCount(row.total_stock),
        available_stock=StockCount(row.available_stock),
        benefits=row.benefits,
        version=row.version,
    )


def _to_level(values: dict) -> StockLevel:
    return StockLevel(
        tier_id=TierId(values["id"]),
        event_id=EventId(values["event_id"]),
        remaining=values["available_stock"],
        total=values["total_stock"],
        version=values["version"],
    )


def _to_transaction(row: models.Transaction) -> Transaction:
    return Transaction(
        id=TransactionId(row.id),
        event_id=EventId(row.event_id),
        tier_id=TierId(row.tier_id),
        purchaser=row.purchaser,
        quantity=row.quantity,
        unit_price=Money(row.unit_price),
        total_amount=Money(row.total_amount),
        reference=row.reference,
        client_ref=row.client_ref,
        status=TransactionStatus(row.status),
        created_at=row.created_at,
        cancelled_at=row.cancelled_at,
    )


def new_reference() -> str:
    return f"TB-{secrets.token_hex(5).upper()}"


class DjangoInventoryStore(InventoryStore):
    """Relational inventory store using Django ORM.

    Stock writes are conditional UPDATE statements, so the database row lock
    serializes concurrent writers on the same tier.
    """

    def get_event(self, event_id: EventId) -> Event | None:
        row = models.Event.objects.prefetch_related("tiers").filter(pk=event_id.value).first()
        if row is None:
            return None
        return Event(
            id=EventId(row.id),
            title=row.title,
            category=row.category,
            venue=row.venue,
            starts_at=row.starts_at,
            created_at=row.created_at,
            tiers=tuple(_to_tier(tier) for tier in row.tiers.all()),
        )

    def list_tier_ids(self, event_id: EventId | None = None) -> list[TierId]:
        qs = models.TicketTier.objects.order_by("event_id", "position", "created_at")
        if event_id is not None:
            qs = qs.filter(event_id=event_id.value)
        return [TierId(pk) for pk in qs.values_list("id", flat=True)]

    def stock_levels_for_event(self, event_id: EventId) -> list[StockLevel]:
        qs = models.TicketTier.objects.filter(event_id=event_id.value).values(*_LEVEL_FIELDS)
        return [_to_level(values) for values in qs]

    def stock_level(self, tier_id: TierId) -> StockLevel | None:
        values = models.TicketTier.objects.filter(pk=tier_id.value).values(*_LEVEL_FIELDS).first()
        return _to_level(values) if values is not None else None

    def lock_stock_level(self, tier_id: TierId) -> StockLevel | None:
        values = (
            models.TicketTier.objects.select_for_update()
            .filter(pk=tier_id.value)
            .values(*_LEVEL_FIELDS)
            .first()
        )
        return _to_level(values) if values is not None else None

    def decrement_if_available(self, tier_id: TierId, quantity: int) -> StockLevel | None:
        updated = models.TicketTier.objects.filter(
            pk=tier_id.value, available_stock__gte=quantity
        ).update(
            available_stock=F("available_stock") - quantity,
            version=F("version") + 1,
        )
        if not updated:
            return None
        return self.stock_level(tier_id)

    def restore(self, tier_id: TierId, quantity: int) -> StockLevel | None:
        updated = models.TicketTier.objects.filter(pk=tier_id.value).update(
            available_stock=Least(
                F("available_stock") + quantity,
                F("total_stock"),
                output_field=IntegerField(),
            ),
            version=F("version") + 1,
        )
        if not updated:
            return None
        return self.stock_level(tier_id)

    def set_available(self, tier_id: TierId, value: int) -> StockLevel | None:
        updated = models.TicketTier.objects.filter(pk=tier_id.value).update(
            available_stock=value,
            version=F("version") + 1,
        )
        if not updated:
            return None
        return self.stock_level(tier_id)


class DjangoTransactionStore(TransactionStore):
    """Relational transaction store using Django ORM."""

    def get(self, transaction_id: TransactionId) -> Transaction | None:
        row = models.Transaction.objects.filter(pk=transaction_id.value).first()
        return _to_transaction(row) if row is not None else None

    def get_by_client_ref(self, client_ref: str) -> Transaction | None:
        row = models.Transaction.objects.filter(client_ref=client_ref).first()
        return _to_transaction(row) if row is not None else None

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
        total = (unit_price * quantity).amount.quantize(Decimal("0.01"))
        try:
            with db_transaction.atomic():
                row = models.Transaction.objects.create(
                    event_id=event_id.value,
                    tier_id=tier_id.value,
                    purchaser=purchaser,
                    quantity=quantity,
                    unit_price=unit_price.amount,
                    total_amount=total,
                    reference=new_reference(),
                    client_ref=client_ref,
                )
        except IntegrityError:
            if models.Transaction.objects.filter(client_ref=client_ref).exists():
                raise DuplicateClientRefError(client_ref) from None
            raise
        return _to_transaction(row)

    def mark_cancelled(self, transaction_id: TransactionId) -> Transaction | None:
        updated = models.Transaction.objects.filter(
            pk=transaction_id.value, status=models.Transaction.Status.CONFIRMED
        ).update(
            status=models.Transaction.Status.CANCELLED,
            cancelled_at=timezone.now(),
        )
        if not updated:
            return None
        return self.get(transaction_id)

    def delete(self, transaction_id: TransactionId) -> Transaction | None:
        row = models.Transaction.objects.select_for_update().filter(pk=transaction_id.value).first()
        if row is None:
            return None
        deleted = _to_transaction(row)
        row.delete()
        return deleted

    def sold_quantity(self, tier_id: TierId) -> int:
        return models.Transaction.objects.filter(
            tier_id=tier_id.value, status=models.Transaction.Status.CONFIRMED
        ).aggregate(total=Coalesce(Sum("quantity"), 0))["total"]

    def list_for_purchaser(self, purchaser: str) -> list[Transaction]:
        rows = models.Transaction.objects.filter(purchaser=purchaser).order_by("-created_at")
        return [_to_transaction(row) for row in rows]

    def sales_stats(self) -> SalesStats:
        totals = models.Transaction.objects.aggregate(
            tickets=Coalesce(Sum("quantity", filter=Q(status="CONFIRMED")), 0),
            revenue=Sum("total_amount", filter=Q(status="CONFIRMED")),
            count=Count("id", filter=Q(status="CONFIRMED")),
        )
        return SalesStats(
            tickets_sold=totals["tickets"],
            revenue=Money(totals["revenue"] or Decimal("0.00")),
            transactions=totals["count"],
        )
