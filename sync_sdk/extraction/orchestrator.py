"""State machine driving one extraction invocation.

An invocation walks ``Idle -> ResettingIfIncremental -> FetchingType ->
DrainingChildren`` and ends in exactly one of ``Done``, ``Suspended`` or
``Aborted``, emitting exactly one signal:

- ``Done`` when every record type is complete and no dependent fetch is queued.
- ``Delay`` when a rate limit stops the pass; the host re-invokes later.
- ``Progress`` when the invocation deadline is reached between two steps.
- ``Error`` when the pass cannot continue.

The checkpoint is saved after every completed step and before every
suspension, so a new invocation resumes from the last completed step.
"""

import asyncio
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence

from sync_sdk.common.error_codes import (
    EXTRACTION_ERRORS,
    SinkError,
    SyncError,
    ValidationError,
)
from sync_sdk.common.rate_window import RateWindowTracker
from sync_sdk.constants import RATE_LIMIT_SAFETY_MARGIN
from sync_sdk.events.emitter import SignalEmitter
from sync_sdk.events.models import Signal
from sync_sdk.extraction.fetcher import PaginatedFetcher
from sync_sdk.extraction.models import FetchFailed, RateLimited, SyncMode
from sync_sdk.extraction.state import ExtractionState
from sync_sdk.extraction.strategies import RecordTypeRegistry, RecordTypeStrategy
from sync_sdk.observability.logger_adaptor import get_logger
from sync_sdk.repositories import RepositoryRegistry

logger = get_logger(__name__)

Checkpoint = Callable[[ExtractionState], Awaitable[None]]


class OrchestratorStatus(str, Enum):
    IDLE = "idle"
    RESETTING_IF_INCREMENTAL = "resetting-if-incremental"
    FETCHING_TYPE = "fetching-type"
    DRAINING_CHILDREN = "draining-children"
    DONE = "done"
    SUSPENDED = "suspended"
    ABORTED = "aborted"


async def _no_checkpoint(state: ExtractionState) -> None:
    return None


class ExtractionOrchestrator:
    """Sequences record types, sinks their records and checkpoints progress.

    Args:
        registry (RecordTypeRegistry): Record types in dependency order.
        tracker (RateWindowTracker): Request budget of this invocation.
        repositories (RepositoryRegistry): Sinks looked up by repository name.
        emitter (SignalEmitter): Receives the single outcome signal.
        checkpoint (Checkpoint): Persists the state; awaited after every step.
        required_scope (Sequence[str]): Scope fields that must be set.
        safety_margin (int): Requests kept in reserve while draining.
        clock (Callable[[], float]): Wall clock in epoch seconds.
        sleep (Callable[[float], Awaitable[None]]): Cooperative sleep.
    """

    def __init__(
        self,
        registry: RecordTypeRegistry,
        tracker: RateWindowTracker,
        repositories: RepositoryRegistry,
        emitter: SignalEmitter,
        checkpoint: Checkpoint = _no_checkpoint,
        required_scope: Sequence[str] = (),
        safety_margin: int = RATE_LIMIT_SAFETY_MARGIN,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        fetcher: Optional[PaginatedFetcher] = None,
    ):
        if safety_margin >= tracker.quota:
            raise ValueError("safety_margin must be lower than the request quota")
        self.registry = registry
        self.tracker = tracker
        self.fetcher = fetcher or PaginatedFetcher(tracker)
        self.repositories = repositories
        self.emitter = emitter
        self.checkpoint = checkpoint
        self.required_scope = list(required_scope)
        self.safety_margin = safety_margin
        self.clock = clock
        self.sleep = sleep
        self.status = OrchestratorStatus.IDLE
        self.deadline: Optional[float] = None

    async def run(
        self,
        state: ExtractionState,
        mode: SyncMode = SyncMode.FULL,
        pass_start: bool = True,
        deadline: Optional[float] = None,
        pass_id: Optional[str] = None,
    ) -> Signal:
        """Run one invocation of an extraction pass.

        Args:
            state: Checkpoint loaded by the host; mutated in place.
            mode: Full or incremental pass.
            pass_start: True for the first invocation of a pass.
            deadline: Epoch seconds after which no new step is started.
            pass_id: Identifier of the pass. A pass start whose ``pass_id`` is
                already recorded in the checkpoint is a retried invocation and
                resumes instead of starting over.

        Returns:
            Signal: The signal emitted to the host.
        """
        self.status = OrchestratorStatus.IDLE
        self.deadline = deadline

        missing = state.scope.missing(self.required_scope)
        if missing:
            error = ValidationError(
                f"Missing required scope identifiers: {', '.join(missing)}"
            )
            return await self._abort(None, error)

        state.ensure_types(self.registry.names)

        if pass_start and pass_id is not None and state.pass_id == pass_id:
            logger.info(f"Pass {pass_id} already started, resuming from the checkpoint")
        elif pass_start:
            self.status = OrchestratorStatus.RESETTING_IF_INCREMENTAL
            started_at = datetime.fromtimestamp(self.clock(), tz=timezone.utc)
            if mode == SyncMode.INCREMENTAL:
                logger.info("Incremental pass, re-fetching every record type")
                state.reset_for_incremental(started_at)
            else:
                state.mode = SyncMode.FULL
                state.last_sync_started = started_at
            state.pass_id = pass_id
            await self.checkpoint(state)

        for strategy in self.registry.primary:
            if state.is_complete(strategy.record_type):
                continue
            if self._deadline_reached():
                return await self._suspend_on_timeout(state)
            signal = await self._fetch_type(state, strategy)
            if signal is not None:
                return signal

        for strategy in self.registry.dependents:
            if state.has_pending(strategy.record_type):
                signal = await self._drain_children(state, strategy)
                if signal is not None:
                    return signal
            elif not state.is_complete(strategy.record_type):
                state.mark_complete(strategy.record_type)
                await self.checkpoint(state)

        self.status = OrchestratorStatus.DONE
        state.last_successful_sync_started = state.last_sync_started
        await self.checkpoint(state)
        logger.info("Extraction pass complete")
        signal = Signal.done()
        await self.emitter.emit(signal)
        return signal

    async def _fetch_type(
        self, state: ExtractionState, strategy: RecordTypeStrategy
    ) -> Optional[Signal]:
        self.status = OrchestratorStatus.FETCHING_TYPE
        logger.info(f"Extracting {strategy.name}")

        result = await self.fetcher.fetch_all(
            lambda page: strategy.fetch_page(page, state), strategy.extract_items
        )
        if isinstance(result, RateLimited):
            return await self._suspend_on_rate_limit(state, result.delay_ms)
        if isinstance(result, FetchFailed):
            return await self._abort(
                state,
                SyncError(
                    f"Failed to extract {strategy.name}: {result.error}",
                    EXTRACTION_ERRORS["FETCH_FAILED"],
                ),
            )

        items = strategy.prepare(result.items)
        if items:
            try:
                await self.repositories.push(strategy.repository, items)
            except SinkError as e:
                return await self._abort(state, e)
            self._enqueue_children(state, strategy, items)

        state.mark_complete(strategy.record_type, page=result.pages)
        await self.checkpoint(state)
        logger.info(f"Extracted {len(items)} {strategy.name} over {result.pages} pages")
        return None

    async def _drain_children(
        self, state: ExtractionState, strategy: RecordTypeStrategy
    ) -> Optional[Signal]:
        self.status = OrchestratorStatus.DRAINING_CHILDREN
        logger.info(
            f"Draining {len(state.pending(strategy.record_type))} pending {strategy.name} fetches"
        )

        while state.has_pending(strategy.record_type):
            if self._deadline_reached():
                return await self._suspend_on_timeout(state)

            budget = self.tracker.remaining_quota() - self.safety_margin
            if budget <= 0:
                wait_ms = self.tracker.ms_until_window_reset()
                if self._deadline_reached(wait_ms / 1000):
                    return await self._suspend_on_timeout(state)
                logger.info(f"Request budget low, waiting {wait_ms} ms for the window")
                await self.sleep(wait_ms / 1000)
                continue

            batch = list(state.pending(strategy.record_type)[:budget])
            for parent_id in batch:
                if self._deadline_reached():
                    return await self._suspend_on_timeout(state)

                result = await self.fetcher.fetch_all(
                    lambda page: strategy.fetch_children_page(parent_id, page, state),
                    strategy.extract_items,
                )
                if isinstance(result, RateLimited):
                    return await self._suspend_on_rate_limit(state, result.delay_ms)
                if isinstance(result, FetchFailed):
                    logger.warning(
                        f"Skipping {strategy.name} of {parent_id}: {result.error}"
                    )
                    state.pop_pending(strategy.record_type)
                    await self.checkpoint(state)
                    continue

                items = strategy.prepare(result.items, parent_id)
                if items:
                    try:
                        await self.repositories.push(strategy.repository, items)
                    except SinkError as e:
                        return await self._abort(state, e)
                    self._enqueue_children(state, strategy, items)

                state.pop_pending(strategy.record_type)
                await self.checkpoint(state)

        state.mark_complete(strategy.record_type)
        await self.checkpoint(state)
        return None

    def _enqueue_children(
        self, state: ExtractionState, strategy: RecordTypeStrategy, items: list
    ) -> None:
        children = self.registry.children_of(strategy.record_type)
        if not children:
            return
        ids = strategy.extract_child_ids(items)
        for child in children:
            state.enqueue_children(child.record_type, ids)

    def _deadline_reached(self, after: float = 0) -> bool:
        return self.deadline is not None and self.clock() + after >= self.deadline

    async def _suspend_on_rate_limit(
        self, state: ExtractionState, delay_ms: int
    ) -> Signal:
        self.status = OrchestratorStatus.SUSPENDED
        await self.checkpoint(state)
        logger.info(f"Rate limited, suspending for {delay_ms} ms")
        signal = Signal.delay(delay_ms)
        await self.emitter.emit(signal)
        return signal

    async def _suspend_on_timeout(self, state: ExtractionState) -> Signal:
        self.status = OrchestratorStatus.SUSPENDED
        await self.checkpoint(state)
        percent = state.progress_percent(self.registry.names)
        logger.info(f"Invocation deadline reached at {percent}% of record types")
        signal = Signal.progress_signal(percent)
        await self.emitter.emit(signal)
        return signal

    async def _abort(
        self, state: Optional[ExtractionState], error: SyncError
    ) -> Signal:
        self.status = OrchestratorStatus.ABORTED
        logger.error(f"Extraction aborted: {error}")
        if state is not None:
            await self.checkpoint(state)
        signal = Signal.error(error.message)
        await self.emitter.emit(signal)
        return signal
