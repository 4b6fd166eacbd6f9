"""Serializers for request parsing and for turning domain models into API responses."""

from rest_framework import serializers


class PurchaseRequestSerializer(serializers.Serializer):
    """Input format of POST /api/stock/purchase. Business rules live in the service."""

    event_id = serializers.CharField()
    tier_id = serializers.CharField()
    quantity = serializers.IntegerField()
    client_transaction_ref = serializers.CharField(trim_whitespace=False, max_length=128)


class ResyncRequestSerializer(serializers.Serializer):
    event_id = serializers.CharField(required=False)


class TransactionSerializer(serializers.Serializer):
    """Serializer for Transaction domain model."""

    id = serializers.UUIDField(source="id.value")
    event_id = serializers.UUIDField(source="event_id.value")
    tier_id = serializers.UUIDField(source="tier_id.value")
    purchaser = serializers.CharField()
    quantity = serializers.IntegerField()
    unit_price = serializers.DecimalField(source="unit_price.amount", max_digits=10, decimal_places=2)
    total_amount = serializers.DecimalField(source="total_amount.amount", max_digits=12, decimal_places=2)
    reference = serializers.CharField()
    client_transaction_ref = serializers.CharField(source="client_ref")
    status = serializers.CharField(source="status.value")
    created_at = serializers.DateTimeField()
    cancelled_at = serializers.DateTimeField(allow_null=True)


class StockLevelSerializer(serializers.Serializer):
    """Serializer for StockLevel domain model."""

    tier_id = serializers.UUIDField(source="tier_id.value")
    remaining = serializers.IntegerField()
    total = serializers.IntegerField()
    version = serializers.IntegerField()


class ResyncEntrySerializer(serializers.Serializer):
    tier_id = serializers.UUIDField(source="tier_id.value")
    event_id = serializers.UUIDField(source="event_id.value")
    previous_cached_value = serializers.IntegerField()
    corrected_value = serializers.IntegerField()


class SalesStatsSerializer(serializers.Serializer):
    tickets_sold = serializers.IntegerField()
    revenue = serializers.DecimalField(source="revenue.amount", max_digits=14, decimal_places=2)
    transactions = serializers.IntegerField()
