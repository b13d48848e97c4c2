"""
Progress reconciliation: application layer orchestrator.

Keeps the device cache and the remote store converging on one record per
learner. Reads go cache -> remote, the merge result flows back to whichever
side is stale, and every mutation is written locally first and pushed to the
remote store in the background.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from fluentia.domain.constants import PUSH_HISTORY_LIMIT
from fluentia.domain.errors import RemoteStoreError
from fluentia.domain.models import (
    Attempt,
    ProgressRecord,
    ProgressSummary,
    PushResult,
    ScheduleResult,
)
from fluentia.domain.ports import KeyValueStore, RemoteProgressStore
from fluentia.infrastructure.cache import LocalProgressCache

from .due import due_items, due_queue
from .merge import merge
from .quality import attempt_to_quality
from .scheduler import advance, initial_state

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def epoch_ms(moment: datetime) -> int:
    return int(round(moment.timestamp() * 1000))


class InFlightResolves:
    """
    Shares one running resolve per user between concurrent callers.

    Owned by a reconciler (or handed to several on purpose), never global,
    so two learner sessions in one process cannot see each other's fetches.
    """

    def __init__(self):
        self._tasks: dict[str, asyncio.Task[ProgressRecord]] = {}

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._tasks

    async def run(
        self, user_id: str, factory: Callable[[], Awaitable[ProgressRecord]]
    ) -> ProgressRecord:
        task = self._tasks.get(user_id)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._tasks[user_id] = task
            task.add_done_callback(lambda t: self._forget(user_id, t))
        # Shield so one cancelled caller does not abort a merge others await
        return await asyncio.shield(task)

    def _forget(self, user_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(user_id) is task:
            del self._tasks[user_id]


class SyncReconciler:
    """
    Offline-first progress synchronizer.

    Args:
        cache: Device-local cache.
        remote: Remote store, or None to run fully local.
        clock: Source of "now"; injectable for tests.
        in_flight: Resolve de-duplication state. A fresh one per reconciler
            unless given.
    """

    def __init__(
        self,
        cache: LocalProgressCache,
        remote: RemoteProgressStore | None = None,
        clock: Clock | None = None,
        in_flight: InFlightResolves | None = None,
    ):
        self._cache = cache
        self._remote = remote
        self._clock = clock or utc_now
        self._in_flight = in_flight or InFlightResolves()
        # Serializes local read-modify-write so concurrent mutations both land
        self._lock = asyncio.Lock()
        self._pending: set[asyncio.Task[PushResult]] = set()
        self._undrained: list[PushResult] = []
        self.push_history: deque[PushResult] = deque(maxlen=PUSH_HISTORY_LIMIT)

    @property
    def cache(self) -> LocalProgressCache:
        return self._cache

    def _syncs(self, user_id: str | None) -> bool:
        return bool(user_id) and self._remote is not None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def resolve(self, user_id: str | None = None) -> ProgressRecord:
        """
        Return the authoritative progress record for `user_id`.

        Without a user (or without a remote store) the local cache is the
        whole truth. Never raises: a transport failure falls back to the
        local cache untouched.
        """
        if not self._syncs(user_id):
            return await self._local_or_empty()
        return await self._in_flight.run(user_id, lambda: self._reconcile(user_id))

    async def _local_or_empty(self) -> ProgressRecord:
        local = await self._cache.read()
        return local if local is not None else ProgressRecord.empty()

    async def _reconcile(self, user_id: str) -> ProgressRecord:
        merged, remote_stale = await self._merge_with_remote(user_id)
        if remote_stale:
            self._schedule_push(user_id, merged)
        return merged

    async def _merge_with_remote(self, user_id: str) -> tuple[ProgressRecord, bool]:
        """
        Fetch, merge and refresh the cache.

        Returns the merged record and whether the remote copy lacks local
        content. Pushing is left to the caller.
        """
        local = await self._cache.read()
        fallback = local if local is not None else ProgressRecord.empty()
        try:
            remote = await self._remote.fetch(user_id)
        except RemoteStoreError as e:
            logger.warning(f"Progress sync skipped for user={user_id}: {e}")
            return fallback, False
        except Exception:
            logger.exception(f"Progress fetch crashed for user={user_id}")
            return fallback, False

        merged = merge(local, remote)
        # First sync creates the remote row; otherwise push only real content changes
        remote_stale = local is not None and (remote is None or _content_differs(local, remote))

        if remote is not None and merged != local:
            await self._cache.write(merged)

        return merged, remote_stale

    async def _current_for_update(self, user_id: str | None) -> tuple[ProgressRecord, bool]:
        if not self._syncs(user_id):
            return await self._local_or_empty(), False
        return await self._merge_with_remote(user_id)

    async def get_completed_items(self, user_id: str | None = None) -> list[str]:
        record = await self.resolve(user_id)
        return list(record.completed)

    async def get_due_items(
        self, user_id: str | None = None, now: datetime | None = None
    ) -> set[str]:
        record = await self.resolve(user_id)
        return due_items(record.schedules, now or self._clock())

    async def get_review_queue(
        self, user_id: str | None = None, now: datetime | None = None
    ) -> list[str]:
        """Due items, most overdue first."""
        record = await self.resolve(user_id)
        return due_queue(record.schedules, now or self._clock())

    async def get_progress_summary(self, user_id: str | None = None) -> ProgressSummary:
        record = await self.resolve(user_id)
        return ProgressSummary.from_record(record, epoch_ms(self._clock()))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def mark_item_completed(
        self, item_id: str, user_id: str | None = None
    ) -> ProgressRecord:
        """
        Add `item_id` to the learner's completed set. Idempotent.

        Returns the record now in effect.
        """
        async with self._lock:
            current, remote_stale = await self._current_for_update(user_id)
            if current.has_completed(item_id):
                if remote_stale:
                    self._schedule_push(user_id, current)
                return current

            updated = current.evolve(
                completed=current.completed + (item_id,),
                updated_at=epoch_ms(self._clock()),
                version=current.version + 1,
            )
            await self._commit(updated, user_id)
            return updated

    mark_module_completed = mark_item_completed

    async def reset_progress(self, user_id: str | None = None) -> ProgressRecord:
        """
        Wipe the learner's progress. Not merged against history.

        The cleared record keeps `version` increasing and carries the
        current time, so it wins the next reconciliation.
        """
        async with self._lock:
            local = await self._cache.read()
            previous = local.version if local is not None else 0
            cleared = ProgressRecord.empty(
                version=previous + 1, updated_at=epoch_ms(self._clock())
            )
            await self._commit(cleared, user_id)
            logger.info(f"Progress reset for user={user_id or '<local>'}")
            return cleared

    async def record_attempt(
        self,
        attempt: Attempt,
        user_id: str | None = None,
        now: datetime | None = None,
    ) -> ScheduleResult:
        """
        Schedule the next review of `attempt.item_id` and persist it.

        A successful answer (quality >= 3) also marks the item completed.
        """
        now = now or self._clock()
        quality = attempt_to_quality(attempt)

        async with self._lock:
            current, _ = await self._current_for_update(user_id)
            state = current.schedules.get(attempt.item_id) or initial_state()
            result = advance(state, quality, now)

            schedules = dict(current.schedules)
            schedules[attempt.item_id] = result.state
            completed = current.completed
            if quality >= 3 and not current.has_completed(attempt.item_id):
                completed = completed + (attempt.item_id,)

            updated = current.evolve(
                completed=completed,
                schedules=schedules,
                updated_at=epoch_ms(now),
                version=current.version + 1,
            )
            await self._commit(updated, user_id)

        logger.debug(
            f"Scheduled item={attempt.item_id} quality={quality} "
            f"interval={result.state.interval_days}d ease={result.state.ease_factor:.2f}"
        )
        return result

    async def _commit(self, record: ProgressRecord, user_id: str | None) -> None:
        await self._cache.write(record)
        if self._syncs(user_id):
            self._schedule_push(user_id, record)

    # ------------------------------------------------------------------
    # Background pushes
    # ------------------------------------------------------------------

    def _schedule_push(self, user_id: str, record: ProgressRecord) -> asyncio.Task[PushResult]:
        task = asyncio.create_task(self._push(user_id, record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _push(self, user_id: str, record: ProgressRecord) -> PushResult:
        try:
            await self._remote.upsert(user_id, record)
            result = PushResult(user_id=user_id, version=record.version, ok=True)
        except RemoteStoreError as e:
            logger.error(f"progress.push failed for user={user_id}: {e}")
            result = PushResult(user_id=user_id, version=record.version, ok=False, error=e)
        except Exception as e:
            logger.exception(f"progress.push crashed for user={user_id}")
            result = PushResult(user_id=user_id, version=record.version, ok=False, error=e)
        self._undrained.append(result)
        self.push_history.append(result)
        return result

    @property
    def pending_pushes(self) -> int:
        return len(self._pending)

    async def drain_pushes(self) -> list[PushResult]:
        """
        Wait for every outstanding push and return the results not yet drained.

        Pushes that finished on their own since the last drain are included.
        Each result is returned exactly once.
        """
        while self._pending:
            await asyncio.gather(*list(self._pending))
        results, self._undrained = self._undrained, []
        return results

    async def aclose(self) -> None:
        """Release the remote store's connections, if it holds any."""
        close = getattr(self._remote, "aclose", None)
        if close is not None:
            await close()


class ReconcilerPool:
    """
    One SyncReconciler per learner over shared stores.

    For surfaces that serve many learners from one process. Each learner's
    cache lives under its own key, so no learner's local record is ever
    merged into another's.
    """

    def __init__(
        self,
        store: KeyValueStore,
        remote: RemoteProgressStore | None = None,
        clock: Clock | None = None,
    ):
        self._store = store
        self._remote = remote
        self._clock = clock
        self._reconcilers: dict[str, SyncReconciler] = {}

    def for_user(self, user_id: str) -> SyncReconciler:
        reconciler = self._reconcilers.get(user_id)
        if reconciler is None:
            reconciler = SyncReconciler(
                cache=LocalProgressCache(self._store, owner=user_id),
                remote=self._remote,
                clock=self._clock,
            )
            self._reconcilers[user_id] = reconciler
        return reconciler

    async def drain_pushes(self) -> list[PushResult]:
        results: list[PushResult] = []
        for reconciler in list(self._reconcilers.values()):
            results.extend(await reconciler.drain_pushes())
        return results

    async def aclose(self) -> None:
        close = getattr(self._remote, "aclose", None)
        if close is not None:
            await close()


def _content_differs(local: ProgressRecord, remote: ProgressRecord) -> bool:
    return not local.same_completed(remote) or dict(local.schedules) != dict(remote.schedules)
