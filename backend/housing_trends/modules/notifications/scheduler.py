"""
Notification scheduler.

Each tick lists the saved searches that are due, puts one work item per
search on a queue, and drains it with a bounded pool of workers. For every
search the worker holds a per-search lock, re-checks that the search is
still due, re-runs its filter, compares the aggregates with the ones stored
at the previous firing, hands the message to the delivery collaborator and
only then records the firing with a compare-and-set. A failure anywhere
before that last step leaves the search due for the next tick.

Blocking store, engine and delivery calls run in worker threads so the
time budget and the worker pool apply to them.
"""
from typing import Optional
from datetime import datetime, timezone
import asyncio

from housing_trends.core.config import settings
from housing_trends.core.exceptions import (
    ComputeTimeout, DeliveryFailure, SavedSearchNotFoundError
)
from housing_trends.models.notification import (
    SearchTickResult, TickOutcome, TickReport
)
from housing_trends.models.saved_search import SavedSearch
from housing_trends.modules.notifications.cadence import is_due
from housing_trends.modules.notifications.delivery import NotificationDelivery
from housing_trends.modules.notifications.delta import build_market_update, compute_delta
from housing_trends.modules.notifications.locks import LocalLockManager, SearchLockManager
from housing_trends.modules.saved_searches.store import SavedSearchStore
from housing_trends.modules.search.engine import FilterEngine
import logging

logger = logging.getLogger(__name__)


class NotificationScheduler:
    """Runs scheduler ticks over the saved search store"""

    def __init__(
        self,
        engine: FilterEngine,
        store: SavedSearchStore,
        delivery: NotificationDelivery,
        locks: Optional[SearchLockManager] = None,
        concurrency: Optional[int] = None,
        compute_timeout: Optional[float] = None
    ):
        self.engine = engine
        self.store = store
        self.delivery = delivery
        self.locks = locks or LocalLockManager()
        self.concurrency = max(1, concurrency or settings.NOTIFICATION_CONCURRENCY)
        self.compute_timeout = compute_timeout or settings.NOTIFICATION_TIMEOUT_SECONDS

    async def run_tick(self, now: Optional[datetime] = None) -> TickReport:
        now = now or datetime.now(timezone.utc)
        due = await asyncio.to_thread(self.store.list_due_for_notification, now)
        report = TickReport(started_at=now, due_count=len(due))

        if not due:
            logger.info("Notification tick: nothing due")
            return report

        queue: asyncio.Queue = asyncio.Queue()
        for search in due:
            queue.put_nowait(search)

        async def worker():
            while True:
                try:
                    search = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                try:
                    report.results.append(await self.process(search, now))
                finally:
                    queue.task_done()

        await asyncio.gather(*(worker() for _ in range(min(self.concurrency, len(due)))))

        logger.info(
            f"Notification tick: {len(due)} due, {len(report.fired)} fired, "
            f"{len(report.failed)} failed, {len(report.skipped)} skipped"
        )
        return report

    async def process(self, search: SavedSearch, now: datetime) -> SearchTickResult:
        """Process one due search; never raises"""
        try:
            async with self.locks.hold(search.id) as acquired:
                if not acquired:
                    logger.info(f"Saved search {search.id} is locked by another worker, skipping")
                    return self._result(search, TickOutcome.SKIPPED, "locked")
                return await self._process_locked(search, now)
        except ComputeTimeout as e:
            logger.warning(f"Saved search {search.id}: {e}")
            return self._result(search, TickOutcome.FAILED, "compute timeout")
        except DeliveryFailure as e:
            logger.warning(f"Saved search {search.id}: {e}")
            return self._result(search, TickOutcome.FAILED, "delivery failed")
        except Exception as e:
            logger.error(f"Saved search {search.id} failed during notification tick: {e}")
            return self._result(search, TickOutcome.FAILED, str(e) or type(e).__name__)

    async def _process_locked(self, search: SavedSearch, now: datetime) -> SearchTickResult:
        try:
            current = await asyncio.to_thread(self.store.get, search.id, search.owner_id)
        except SavedSearchNotFoundError:
            return self._result(search, TickOutcome.SKIPPED, "deleted")

        if not is_due(current, now):
            return self._result(search, TickOutcome.SKIPPED, "no longer due")

        validated = self.engine.validate(current.filters)
        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(self.engine.execute, validated),
                timeout=self.compute_timeout
            )
        except asyncio.TimeoutError as e:
            raise ComputeTimeout(
                f"Re-running saved search took longer than {self.compute_timeout}s"
            ) from e

        summary = result.summaries()
        delta = compute_delta(summary, current.last_summary)
        message = build_market_update(current, delta)

        try:
            accepted = await asyncio.wait_for(
                self.delivery.deliver(message),
                timeout=self.compute_timeout
            )
        except asyncio.TimeoutError as e:
            raise DeliveryFailure("Delivery timed out") from e
        except DeliveryFailure:
            raise
        except Exception as e:
            raise DeliveryFailure(f"Delivery raised {type(e).__name__}: {e}") from e
        if not accepted:
            raise DeliveryFailure("Delivery was not accepted")

        fired = await asyncio.to_thread(
            self.store.mark_fired, current.id, now, current.last_fired_at, summary
        )
        if not fired:
            # Another worker fired it between our re-read and now
            logger.info(f"Saved search {current.id} was already marked fired, skipping")
            return self._result(search, TickOutcome.SKIPPED, "already fired")

        logger.info(f"Notification fired for saved search {current.id}")
        return self._result(search, TickOutcome.FIRED)

    @staticmethod
    def _result(search: SavedSearch, outcome: TickOutcome, reason: Optional[str] = None) -> SearchTickResult:
        return SearchTickResult(saved_search_id=search.id, outcome=outcome, reason=reason)
