"""Pytest configuration and shared fixtures."""

from concurrent.futures import Executor, Future
from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from ticketing.conf import PurchasePolicy
from ticketing.models import Event, TicketTier
from ticketing.services import (
    EventService,
    PurchaseService,
    StockBroadcaster,
    StockLedger,
    StockPropagator,
    StockResyncService,
)
from ticketing.stores import DjangoInventoryStore, DjangoStockCache, DjangoTransactionStore


class ImmediateExecutor(Executor):
    """Runs submitted work in the calling thread."""

    def submit(self, fn, /, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_event():
    def _make_event(title: str = "Arijit Live", **kwargs) -> Event:
        kwargs.setdefault("venue", "Jio World Garden")
        kwargs.setdefault("category", "Concert")
        kwargs.setdefault("starts_at", timezone.now() + timedelta(days=30))
        return Event.objects.create(title=title, **kwargs)

    return _make_event


@pytest.fixture
def make_tier():
    def _make_tier(event: Event, name: str = "General", total_stock: int = 5, price: str = "50.00", **kwargs) -> TicketTier:
        return TicketTier.objects.create(
            event=event,
            name=name,
            price=Decimal(price),
            total_stock=total_stock,
            **kwargs,
        )

    return _make_tier


@pytest.fixture
def event(make_event) -> Event:
    return make_event()


@pytest.fixture
def tier(event, make_tier) -> TicketTier:
    return make_tier(event)


@pytest.fixture
def inventory_store() -> DjangoInventoryStore:
    return DjangoInventoryStore()


@pytest.fixture
def transaction_store() -> DjangoTransactionStore:
    return DjangoTransactionStore()


@pytest.fixture
def stock_cache() -> DjangoStockCache:
    return DjangoStockCache()


@pytest.fixture
def ledger(inventory_store) -> StockLedger:
    return StockLedger(inventory_store)


@pytest.fixture
def event_service(inventory_store, ledger, stock_cache) -> EventService:
    return EventService(inventory_store, ledger, stock_cache)


@pytest.fixture
def broadcaster(event_service) -> StockBroadcaster:
    return StockBroadcaster(snapshot_provider=event_service.stock_snapshot)


@pytest.fixture
def immediate_executor() -> ImmediateExecutor:
    return ImmediateExecutor()


@pytest.fixture
def propagator(broadcaster, stock_cache, immediate_executor) -> StockPropagator:
    return StockPropagator(broadcaster, stock_cache, executor=immediate_executor)


@pytest.fixture
def purchase_service(inventory_store, transaction_store, ledger, propagator) -> PurchaseService:
    return PurchaseService(
        inventory_store,
        transaction_store,
        ledger,
        propagator=propagator,
        policy=PurchasePolicy(max_quantity=10),
    )


@pytest.fixture
def resync_service(inventory_store, transaction_store, ledger, stock_cache, propagator) -> StockResyncService:
    return StockResyncService(inventory_store, transaction_store, ledger, stock_cache, propagator=propagator)


@pytest.fixture
def buyer(django_user_model):
    return django_user_model.objects.create_user(username="Buyer@Example.com", password="pw")


@pytest.fixture
def admin_user_client(django_user_model) -> APIClient:
    admin = django_user_model.objects.create_superuser(username="admin", password="pw", email="admin@example.com")
    client = APIClient()
    client.force_authenticate(admin)
    return client


@pytest.fixture
def buyer_client(buyer) -> APIClient:
    client = APIClient()
    client.force_authenticate(buyer)
    return client
