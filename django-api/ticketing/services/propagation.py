"""Post-commit propagation of stock levels.

After a ledger mutation commits, the new level is written to the fast stock
cache and published to subscribers. This runs on a single background worker
so the purchase path never waits on it, and in submission order so one
process never publishes a tier's levels out of commit order. Failures are
retried with exponential backoff, then logged; they never reach the caller
whose commit triggered them.
"""

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from functools import partial

from django.db import transaction as db_transaction
from tenacity import Retrying, before_sleep_log, stop_after_attempt, wait_exponential

from ticketing.domain import StockDelta, StockLevel
from ticketing.services.broadcaster import StockBroadcaster
from ticketing.stores.interfaces import StockCache

logger = logging.getLogger(__name__)


class StockPropagator:
    def __init__(
        self,
        broadcaster: StockBroadcaster,
        cache: StockCache,
        *,
        retry_attempts: int = 5,
        retry_max_wait: float = 2.0,
        executor: Executor | None = None,
    ) -> None:
        self._broadcaster = broadcaster
        self._cache = cache
        self._retry_attempts = retry_attempts
        self._retry_max_wait = retry_max_wait
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="stock-propagation"
        )

    def propagate_on_commit(self, level: StockLevel, *, overwrite: bool = False) -> None:
        """Schedule cache update and broadcast once the current transaction commits.

        With overwrite, the cache entry is replaced regardless of its version.
        """
        fn = partial(self._propagate, overwrite=overwrite)
        db_transaction.on_commit(partial(self._submit, fn, level))

    def overwrite_cache_on_commit(self, level: StockLevel) -> None:
        """Schedule a cache-only forced write once the current transaction commits."""
        fn = partial(self._write_cache, overwrite=True)
        db_transaction.on_commit(partial(self._submit, fn, level))

    def wait_idle(self, timeout: float | None = None) -> None:
        """Block until everything submitted so far has been processed."""
        self._executor.submit(lambda: None).result(timeout=timeout)

    def _submit(self, fn, level: StockLevel) -> None:
        try:
            self._executor.submit(fn, level)
        except RuntimeError:
            logger.error("Stock propagation executor is shut down; dropped tier %s", level.tier_id)

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(multiplier=0.05, max=self._retry_max_wait),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    def _write_cache(self, level: StockLevel, overwrite: bool = False) -> None:
        write = self._cache.overwrite if overwrite else self._cache.set
        try:
            self._retrying()(write, level)
        except Exception:
            logger.exception(
                "Stock cache update failed for tier %s (remaining=%s)",
                level.tier_id,
                level.remaining,
            )

    def _propagate(self, level: StockLevel, overwrite: bool = False) -> None:
        self._write_cache(level, overwrite)
        try:
            self._retrying()(
                self._broadcaster.publish, level.event_id, StockDelta.from_level(level)
            )
        except Exception:
            logger.exception("Stock broadcast failed for tier %s", level.tier_id)
