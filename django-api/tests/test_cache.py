"""Tests for the fast stock cache and post-commit propagation.

Run with: pytest tests/test_cache.py -v
"""

import logging
from uuid import uuid4

import pytest

from ticketing.domain import EventId, StockLevel, TierId
from ticketing.services import StockBroadcaster, StockPropagator
from ticketing.stores import DjangoStockCache
from ticketing.stores.stock_cache import stock_key


def make_level(remaining, version, tier_id=None, event_id=None):
    return StockLevel(
        tier_id=tier_id or TierId(uuid4()),
        event_id=event_id or EventId(uuid4()),
        remaining=remaining,
        total=10,
        version=version,
    )


class FlakyCache:
    """Stock cache whose writes fail a set number of times."""

    def __init__(self, failures):
        self.failures = failures
        self.calls = 0
        self.levels = []

    def set(self, level):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError("cache unavailable")
        self.levels.append(level)
        return True


class TestDjangoStockCache:
    """Tests for DjangoStockCache."""

    def test_miss_returns_none(self, stock_cache: DjangoStockCache):
        assert stock_cache.get(TierId(uuid4())) is None

    def test_set_and_get(self, stock_cache: DjangoStockCache):
        level = make_level(4, 1)
        assert stock_cache.set(level) is True
        assert stock_cache.get(level.tier_id) == 4

    def test_older_version_never_replaces_newer(self, stock_cache: DjangoStockCache):
        """Out-of-order writers cannot roll the cached count back."""
        newer = make_level(2, 5)
        older = make_level(3, 4, tier_id=newer.tier_id)
        stock_cache.set(newer)
        assert stock_cache.set(older) is False
        assert stock_cache.get(newer.tier_id) == 2

    def test_overwrite_ignores_version(self, stock_cache: DjangoStockCache):
        newer = make_level(2, 5)
        stock_cache.set(newer)
        stock_cache.overwrite(make_level(7, 0, tier_id=newer.tier_id))
        assert stock_cache.get(newer.tier_id) == 7

    def test_entry_of_another_event_is_a_miss(self, stock_cache: DjangoStockCache):
        level = make_level(4, 1)
        stock_cache.set(level)
        assert stock_cache.get(level.tier_id, level.event_id) == 4
        assert stock_cache.get(level.tier_id, EventId(uuid4())) is None

    def test_delete(self, stock_cache: DjangoStockCache):
        level = make_level(1, 1)
        stock_cache.set(level)
        stock_cache.delete(level.tier_id)
        assert stock_cache.get(level.tier_id) is None

    def test_key_layout(self):
        tier_id = TierId(uuid4())
        assert stock_key(tier_id) == f"stock:tier:{tier_id}"


@pytest.mark.django_db
class TestCacheSignals:
    """Tier creation and deletion keep the cache in step."""

    def test_new_tier_is_hydrated_on_commit(self, stock_cache, event, make_tier, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            tier = make_tier(event, total_stock=40)
        assert stock_cache.get(TierId(tier.pk)) == 40

    def test_catalog_edit_does_not_touch_cache(self, stock_cache, tier, django_capture_on_commit_callbacks):
        stock_cache.overwrite(make_level(3, 1, tier_id=TierId(tier.pk)))
        with django_capture_on_commit_callbacks(execute=True):
            tier.name = "Early Bird"
            tier.save()
        assert stock_cache.get(TierId(tier.pk)) == 3

    def test_deleted_tier_is_evicted(self, stock_cache, tier, django_capture_on_commit_callbacks):
        tier_id = TierId(tier.pk)
        stock_cache.overwrite(make_level(5, 0, tier_id=tier_id))
        with django_capture_on_commit_callbacks(execute=True):
            tier.delete()
        assert stock_cache.get(tier_id) is None


@pytest.mark.django_db
class TestStockPropagator:
    """Tests for StockPropagator."""

    def test_writes_cache_and_publishes(self, stock_cache, immediate_executor, django_capture_on_commit_callbacks):
        level = make_level(6, 2)
        broadcaster = StockBroadcaster()
        propagator = StockPropagator(broadcaster, stock_cache, executor=immediate_executor)

        with broadcaster.subscribe(level.event_id) as subscription:
            with django_capture_on_commit_callbacks(execute=True):
                propagator.propagate_on_commit(level)
            received = subscription.get(timeout=1)

        assert stock_cache.get(level.tier_id) == 6
        assert (received.tier_id, received.remaining, received.version) == (level.tier_id, 6, 2)

    def test_nothing_happens_before_commit(self, stock_cache, immediate_executor, django_capture_on_commit_callbacks):
        level = make_level(6, 2)
        propagator = StockPropagator(StockBroadcaster(), stock_cache, executor=immediate_executor)

        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            propagator.propagate_on_commit(level)

        assert len(callbacks) == 1
        assert stock_cache.get(level.tier_id) is None

    def test_transient_cache_failure_is_retried(self, immediate_executor):
        cache = FlakyCache(failures=2)
        propagator = StockPropagator(
            StockBroadcaster(), cache, retry_attempts=3, retry_max_wait=0.01, executor=immediate_executor
        )

        propagator._propagate(make_level(1, 1))

        assert cache.calls == 3
        assert len(cache.levels) == 1

    def test_persistent_failure_is_logged_and_still_broadcasts(self, caplog, immediate_executor):
        """A dead cache never blocks the broadcast or reaches the caller."""
        cache = FlakyCache(failures=99)
        broadcaster = StockBroadcaster()
        propagator = StockPropagator(
            broadcaster, cache, retry_attempts=2, retry_max_wait=0.01, executor=immediate_executor
        )
        level = make_level(1, 1)

        with broadcaster.subscribe(level.event_id) as subscription:
            with caplog.at_level(logging.WARNING, logger="ticketing.services.propagation"):
                propagator._propagate(level)
            assert subscription.get(timeout=1).remaining == 1

        assert cache.calls == 2
        assert "Stock cache update failed" in caplog.text

    def test_purchase_succeeds_when_cache_is_down(
        self, inventory_store, transaction_store, ledger, tier, immediate_executor, django_capture_on_commit_callbacks
    ):
        from ticketing.services import PurchaseService

        propagator = StockPropagator(
            StockBroadcaster(), FlakyCache(failures=99), retry_attempts=1, executor=immediate_executor
        )
        service = PurchaseService(inventory_store, transaction_store, ledger, propagator=propagator)

        with django_capture_on_commit_callbacks(execute=True):
            receipt = service.purchase(str(tier.event_id), str(tier.pk), "fan@example.com", 2, "cache-down")

        assert receipt.transaction.quantity == 2
        assert ledger.get_available(TierId(tier.pk)) == 3
