"""Tests for the stock broadcaster and live delta ordering.

Run with: pytest tests/test_broadcaster.py -v
"""

import threading
from uuid import uuid4

import pytest

from ticketing.domain import EventId, StockDelta, TierId
from ticketing.services import StockBroadcaster


def delta(tier_id, remaining, version):
    return StockDelta(tier_id=tier_id, remaining=remaining, version=version)


class BrokenSubscription:
    event_id = None
    closed = False

    def deliver(self, delta):
        raise RuntimeError("socket gone")

    def _shutdown(self):
        self.closed = True


class TestSubscription:
    """Tests for StockBroadcaster.subscribe and Subscription."""

    def test_snapshot_comes_first(self):
        event_id, tier_id = EventId(uuid4()), TierId(uuid4())
        broadcaster = StockBroadcaster(snapshot_provider=lambda _: [delta(tier_id, 5, 0)])

        with broadcaster.subscribe(event_id) as subscription:
            broadcaster.publish(event_id, delta(tier_id, 4, 1))
            assert subscription.get(timeout=1).remaining == 5
            assert subscription.get(timeout=1).remaining == 4

    def test_delta_published_during_snapshot_is_kept(self):
        """Deltas racing the snapshot read arrive after it, not before."""
        event_id, tier_id = EventId(uuid4()), TierId(uuid4())
        broadcaster = StockBroadcaster()

        def snapshot(_):
            broadcaster.publish(event_id, delta(tier_id, 3, 2))
            return [delta(tier_id, 4, 1)]

        broadcaster._snapshot_provider = snapshot
        with broadcaster.subscribe(event_id) as subscription:
            assert [subscription.get(timeout=1).remaining for _ in range(2)] == [4, 3]

    def test_stale_and_duplicate_versions_are_dropped(self):
        event_id, tier_id = EventId(uuid4()), TierId(uuid4())
        broadcaster = StockBroadcaster()

        with broadcaster.subscribe(event_id) as subscription:
            for remaining, version in [(3, 2), (4, 1), (3, 2), (1, 3)]:
                broadcaster.publish(event_id, delta(tier_id, remaining, version))
            assert subscription.get(timeout=1).version == 2
            assert subscription.get(timeout=1).version == 3
            assert subscription.get(timeout=0.05) is None

    def test_versions_are_tracked_per_tier(self):
        event_id = EventId(uuid4())
        vip, general = TierId(uuid4()), TierId(uuid4())
        broadcaster = StockBroadcaster()

        with broadcaster.subscribe(event_id) as subscription:
            broadcaster.publish(event_id, delta(vip, 9, 5))
            broadcaster.publish(event_id, delta(general, 2, 1))
            assert subscription.get(timeout=1).tier_id == vip
            assert subscription.get(timeout=1).tier_id == general

    def test_only_subscribers_of_the_event_receive(self):
        event_id, other_id = EventId(uuid4()), EventId(uuid4())
        broadcaster = StockBroadcaster()

        with broadcaster.subscribe(other_id) as subscription:
            assert broadcaster.publish(event_id, delta(TierId(uuid4()), 1, 1)) == 0
            assert subscription.get(timeout=0.05) is None

    def test_close_unregisters_and_ends_iteration(self):
        event_id = EventId(uuid4())
        broadcaster = StockBroadcaster()
        subscription = broadcaster.subscribe(event_id)
        assert broadcaster.subscriber_count(event_id) == 1

        seen = []
        reader = threading.Thread(target=lambda: seen.extend(subscription))
        reader.start()
        broadcaster.publish(event_id, delta(TierId(uuid4()), 2, 1))
        subscription.close()
        reader.join(timeout=2)

        assert not reader.is_alive()
        assert [d.remaining for d in seen] == [2]
        assert broadcaster.subscriber_count(event_id) == 0
        assert broadcaster.publish(event_id, delta(TierId(uuid4()), 1, 2)) == 0

    def test_failing_subscriber_does_not_affect_others(self):
        """A subscriber that raises is dropped; the rest still receive."""
        event_id, tier_id = EventId(uuid4()), TierId(uuid4())
        broadcaster = StockBroadcaster()
        broken = BrokenSubscription()
        broken.event_id = event_id

        with broadcaster.subscribe(event_id) as healthy:
            broadcaster._subscribers[event_id].add(broken)
            assert broadcaster.publish(event_id, delta(tier_id, 1, 1)) == 1
            assert healthy.get(timeout=1).remaining == 1
            assert broken.closed is True
            assert broadcaster.subscriber_count(event_id) == 1

    def test_snapshot_failure_unregisters(self):
        event_id = EventId(uuid4())

        def failing(_):
            raise RuntimeError("db down")

        broadcaster = StockBroadcaster(snapshot_provider=failing)
        with pytest.raises(RuntimeError):
            broadcaster.subscribe(event_id)
        assert broadcaster.subscriber_count(event_id) == 0


@pytest.mark.django_db
class TestLiveDeltas:
    """Purchases reach subscribers as absolute remaining counts, in commit order."""

    def test_purchases_stream_in_commit_order(
        self, broadcaster, purchase_service, tier, django_capture_on_commit_callbacks
    ):
        event_id = EventId(tier.event_id)

        with broadcaster.subscribe(event_id) as subscription:
            for quantity in (2, 1, 3):
                with django_capture_on_commit_callbacks(execute=True):
                    purchase_service.purchase(
                        str(tier.event_id), str(tier.pk), "fan@example.com", quantity, uuid4().hex
                    )
            received = [subscription.get(timeout=1) for _ in range(4)]

        assert received[0].remaining == 5
        assert [d.remaining for d in received[1:]] == [3, 2, 0]
        assert all(d.tier_id == TierId(tier.pk) for d in received)
        assert [d.version for d in received] == sorted(d.version for d in received)

    def test_rejected_purchase_publishes_nothing(
        self, broadcaster, purchase_service, tier, django_capture_on_commit_callbacks
    ):
        from ticketing.domain.errors import OutOfStockError

        with broadcaster.subscribe(EventId(tier.event_id)) as subscription:
            subscription.get(timeout=1)
            with django_capture_on_commit_callbacks(execute=True) as callbacks:
                with pytest.raises(OutOfStockError):
                    purchase_service.purchase(
                        str(tier.event_id), str(tier.pk), "fan@example.com", 6, "too-many"
                    )
            assert callbacks == []
            assert subscription.get(timeout=0.05) is None

    def test_refund_publishes_restored_count(
        self, broadcaster, purchase_service, tier, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            receipt = purchase_service.purchase(
                str(tier.event_id), str(tier.pk), "fan@example.com", 4, "refund-me"
            )

        with broadcaster.subscribe(EventId(tier.event_id)) as subscription:
            assert subscription.get(timeout=1).remaining == 1
            with django_capture_on_commit_callbacks(execute=True):
                purchase_service.refund(str(receipt.transaction.id))
            assert subscription.get(timeout=1).remaining == 5
