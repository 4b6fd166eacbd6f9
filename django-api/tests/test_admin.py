"""Tests for the Django admin integration.

Run with: pytest tests/test_admin.py -v
"""

from uuid import uuid4

import pytest
from django.contrib import admin
from django.test import RequestFactory

from ticketing import admin as ticketing_admin
from ticketing.models import TicketTier, Transaction


def buy(service, tier, quantity, ref=None):
    return service.purchase(
        str(tier.event_id), str(tier.pk), "fan@example.com", quantity, ref or uuid4().hex
    )


class PurgedElsewhere:
    """Purchase service where another admin purges a row first."""

    def __init__(self, service, transaction_id):
        self._service = service
        self._pending = str(transaction_id)

    def purge(self, transaction_id):
        if self._pending is not None:
            pending, self._pending = self._pending, None
            self._service.purge(pending)
        return self._service.purge(transaction_id)


@pytest.fixture
def transaction_admin(monkeypatch):
    model_admin = ticketing_admin.TransactionAdmin(Transaction, admin.site)
    model_admin.sent_messages = []
    monkeypatch.setattr(
        model_admin,
        "message_user",
        lambda request, message, level=None: model_admin.sent_messages.append(message),
    )
    return model_admin


@pytest.mark.django_db
class TestTransactionAdmin:
    """Tests for admin deletes and refunds going through the purchase service."""

    def test_bulk_delete_restores_stock(self, transaction_admin, purchase_service, monkeypatch, tier):
        monkeypatch.setattr(ticketing_admin, "get_purchase_service", lambda: purchase_service)
        buy(purchase_service, tier, 2)
        buy(purchase_service, tier, 1)

        transaction_admin.delete_queryset(RequestFactory().post("/"), Transaction.objects.all())

        assert Transaction.objects.count() == 0
        assert TicketTier.objects.get(pk=tier.pk).available_stock == 5

    def test_bulk_delete_continues_past_missing_rows(
        self, transaction_admin, purchase_service, monkeypatch, tier
    ):
        """A row purged by someone else is reported and the rest still go."""
        first = buy(purchase_service, tier, 2).transaction
        second = buy(purchase_service, tier, 1).transaction
        third = buy(purchase_service, tier, 1).transaction
        monkeypatch.setattr(
            ticketing_admin,
            "get_purchase_service",
            lambda: PurgedElsewhere(purchase_service, second.id),
        )
        queryset = Transaction.objects.filter(pk__in=[first.id.value, second.id.value, third.id.value]).order_by(
            "created_at"
        )

        transaction_admin.delete_queryset(RequestFactory().post("/"), queryset)

        assert Transaction.objects.count() == 0
        assert TicketTier.objects.get(pk=tier.pk).available_stock == 5
        assert len(transaction_admin.sent_messages) == 1
        assert "Transaction not found" in transaction_admin.sent_messages[0]

    def test_refund_action_reports_already_cancelled(
        self, transaction_admin, purchase_service, monkeypatch, tier
    ):
        monkeypatch.setattr(ticketing_admin, "get_purchase_service", lambda: purchase_service)
        receipt = buy(purchase_service, tier, 2)
        purchase_service.refund(str(receipt.transaction.id))

        transaction_admin.refund_selected(RequestFactory().post("/"), Transaction.objects.all())

        assert transaction_admin.sent_messages[-1] == "Refunded 0 transaction(s)."
        assert TicketTier.objects.get(pk=tier.pk).available_stock == 5
