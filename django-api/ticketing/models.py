"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
"""

import uuid

from django.db import models


class Event(models.Model):
    """Persistence model for events."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=100, blank=True)
    venue = models.CharField(max_length=255)
    starts_at = models.DateTimeField()
    image_url = models.URLField(max_length=500, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["starts_at"]
        indexes = [
            models.Index(fields=["starts_at"], name="event_starts_at_idx"),
        ]

    def __str__(self) -> str:
        return self.title


class TicketTier(models.Model):
    """Persistence model for ticket tiers.

    ``available_stock`` and ``version`` are written only by the stock ledger
    store; everything else is catalog metadata.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="tiers")
    name = models.CharField(max_length=100)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    total_stock = models.PositiveIntegerField()
    available_stock = models.PositiveIntegerField()
    version = models.PositiveBigIntegerField(default=0)
    benefits = models.TextField(blank=True)
    position = models.PositiveSmallIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    # Columns a plain save() may write once the tier exists. Stock columns
    # belong to the stock ledger and change only through conditional updates.
    CATALOG_FIELDS = ("name", "price", "benefits", "position")

    class Meta:
        ordering = ["position", "created_at"]
        indexes = [
            models.Index(fields=["event", "position"], name="tier_event_position_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(available_stock__lte=models.F("total_stock")),
                name="tier_available_within_total",
            ),
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name="tier_price_non_negative",
            ),
        ]

    def save(self, *args, **kwargs):
        if self._state.adding:
            if self.available_stock is None:
                self.available_stock = self.total_stock
        elif kwargs.get("update_fields") is None:
            kwargs["update_fields"] = self.CATALOG_FIELDS
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.name} - {self.price}"


class Transaction(models.Model):
    """Persistence model for committed purchases."""

    class Status(models.TextChoices):
        CONFIRMED = "CONFIRMED", "Confirmed"
        CANCELLED = "CANCELLED", "Cancelled"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="transactions")
    tier = models.ForeignKey(TicketTier, on_delete=models.PROTECT, related_name="transactions")
    purchaser = models.CharField(max_length=254)
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    reference = models.CharField(max_length=32, unique=True)
    client_ref = models.CharField(max_length=128, unique=True)
    status = models.CharField(
        max_length=16, choices=Status.choices, default=Status.CONFIRMED
    )
    created_at = models.DateTimeField(auto_now_add=True)
    cancelled_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["purchaser", "-created_at"], name="txn_purchaser_created_idx"),
            models.Index(fields=["tier", "status"], name="txn_tier_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="transaction_quantity_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.reference} ({self.quantity} x {self.tier_id})"
