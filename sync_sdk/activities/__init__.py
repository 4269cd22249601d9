"""Temporal activities running one invocation of each extraction phase.

Each activity receives an ``ExtractionEvent`` as a dict, emits exactly one
signal and returns it to the workflow, which plays the host: it re-invokes
``extract_data`` after ``DELAY`` and ``PROGRESS`` signals.

Expected failures (bad scope, source errors, sink errors) become ``ERROR``
signals. Anything else, including a checkpoint that cannot be written,
propagates so Temporal's retry policy applies.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence, Type

from temporalio import activity

from sync_sdk.activities.utils import auto_heartbeater
from sync_sdk.common.error_codes import SinkError, SyncError
from sync_sdk.common.rate_window import RateWindowTracker
from sync_sdk.constants import INVOCATION_DEADLINE_BUFFER, INVOCATION_TIMEOUT
from sync_sdk.events.emitter import CallbackSignalEmitter, RecordingSignalEmitter
from sync_sdk.events.models import ExtractionEvent, Signal
from sync_sdk.extraction.fetcher import PaginatedFetcher
from sync_sdk.extraction.models import FetchFailed, RateLimited
from sync_sdk.extraction.orchestrator import ExtractionOrchestrator
from sync_sdk.handlers import HandlerInterface
from sync_sdk.handlers.github import GitHubHandler
from sync_sdk.observability.logger_adaptor import get_logger
from sync_sdk.repositories import Normalizer, Repository, RepositoryRegistry
from sync_sdk.repositories.json import JsonRepository, build_output_path
from sync_sdk.services.statestore import CheckpointStateStore, StateStore, StateType

logger = get_logger(__name__)
activity.logger = logger

METADATA_REPOSITORY = "external_domain_metadata"

RepositoryFactory = Callable[[str, str, Optional[Normalizer]], Repository]


def json_repository_factory(
    sync_unit_id: str, item_type: str, normalize: Optional[Normalizer]
) -> Repository:
    return JsonRepository(
        item_type, build_output_path(sync_unit_id, item_type), normalize
    )


class SyncActivities:
    """Activities of the extraction phases for one source handler.

    Args:
        handler_class (Type[HandlerInterface]): Source handler to instantiate
            per invocation.
        repository_factory (RepositoryFactory): Builds the repository of an
            item type for a sync unit.
        clock (Callable[[], float]): Wall clock in epoch seconds.
    """

    def __init__(
        self,
        handler_class: Type[HandlerInterface] = GitHubHandler,
        repository_factory: RepositoryFactory = json_repository_factory,
        clock: Callable[[], float] = time.time,
    ):
        self.handler_class = handler_class
        self.repository_factory = repository_factory
        self.clock = clock

    async def _load_handler(self, event: ExtractionEvent) -> HandlerInterface:
        credentials = event.credentials
        if event.credential_guid:
            credentials = await StateStore.get_state(
                event.credential_guid, StateType.CREDENTIALS
            )
        handler = self.handler_class()
        await handler.load(credentials)
        return handler

    def _emitter(self, event: ExtractionEvent) -> RecordingSignalEmitter:
        forward_to = (
            CallbackSignalEmitter(event.callback_url, event.phase)
            if event.callback_url
            else None
        )
        return RecordingSignalEmitter(forward_to=forward_to)

    def _deadline(self, event: ExtractionEvent) -> float:
        """Epoch seconds after which the invocation must stop starting new steps."""
        if event.deadline:
            return event.deadline.timestamp()
        try:
            info = activity.info()
            if info.start_to_close_timeout:
                return (
                    info.started_time.timestamp()
                    + info.start_to_close_timeout.total_seconds()
                    - INVOCATION_DEADLINE_BUFFER.total_seconds()
                )
        except RuntimeError:
            pass
        return self.clock() + INVOCATION_TIMEOUT.total_seconds()

    def _pass_id(self, event: ExtractionEvent) -> Optional[str]:
        """The event's pass id, or the run of the workflow invoking the activity.

        Retries of an activity share the workflow run, so a retried pass start
        is recognised and does not start the pass over.
        """
        if event.pass_id:
            return event.pass_id
        try:
            return activity.info().workflow_run_id
        except RuntimeError:
            return None

    def _repositories(
        self,
        handler: HandlerInterface,
        sync_unit_id: str,
        item_types: Sequence[str],
    ) -> RepositoryRegistry:
        normalizers = handler.transformer.normalizers()
        return RepositoryRegistry(
            [
                self.repository_factory(sync_unit_id, item_type, normalizers.get(item_type))
                for item_type in item_types
            ]
        )

    async def _run_with_deadline(
        self,
        event: ExtractionEvent,
        emitter: RecordingSignalEmitter,
        phase_fn: Callable[[ExtractionEvent, RecordingSignalEmitter], Awaitable[None]],
        timeout_message: str,
    ) -> Dict[str, Any]:
        remaining = self._deadline(event) - self.clock()
        try:
            if remaining <= 0:
                raise asyncio.TimeoutError()
            await asyncio.wait_for(phase_fn(event, emitter), timeout=remaining)
        except asyncio.TimeoutError:
            logger.error(timeout_message)
            await emitter.emit(Signal.error(timeout_message))
        except (SyncError, ValueError) as e:
            logger.error(f"{event.phase.value} failed: {e}")
            await emitter.emit(Signal.error(str(e)))
        return emitter.last.model_dump(mode="json")

    @activity.defn
    @auto_heartbeater
    async def discover_sync_units(self, event_args: Dict[str, Any]) -> Dict[str, Any]:
        """List the sync units of the source.

        Emits ``DONE`` with ``external_sync_units`` in the payload, ``DELAY``
        when rate limited, ``ERROR`` otherwise.
        """
        event = ExtractionEvent.model_validate(event_args)
        return await self._run_with_deadline(
            event,
            self._emitter(event),
            self._discover_sync_units,
            "Failed to extract external sync units. Invocation timeout.",
        )

    async def _discover_sync_units(
        self, event: ExtractionEvent, emitter: RecordingSignalEmitter
    ) -> None:
        handler = await self._load_handler(event)
        fetcher = PaginatedFetcher(RateWindowTracker())
        result = await handler.discover_sync_units(event.scope, fetcher)

        if isinstance(result, RateLimited):
            await emitter.emit(Signal.delay(result.delay_ms))
        elif isinstance(result, FetchFailed):
            await emitter.emit(
                Signal.error(f"Failed to fetch sync units: {result.error}")
            )
        else:
            logger.info(f"Discovered {len(result.items)} sync units")
            await emitter.emit(
                Signal.done(
                    {
                        "external_sync_units": [
                            unit.model_dump() for unit in result.items
                        ]
                    }
                )
            )

    @activity.defn
    @auto_heartbeater
    async def fetch_metadata(self, event_args: Dict[str, Any]) -> Dict[str, Any]:
        """Publish the source's external domain metadata to its repository."""
        event = ExtractionEvent.model_validate(event_args)
        return await self._run_with_deadline(
            event,
            self._emitter(event),
            self._fetch_metadata,
            "Failed to extract metadata. Invocation timeout.",
        )

    async def _fetch_metadata(
        self, event: ExtractionEvent, emitter: RecordingSignalEmitter
    ) -> None:
        handler = await self._load_handler(event)
        metadata = await handler.fetch_metadata()
        repositories = self._repositories(
            handler, event.checkpoint_id, [METADATA_REPOSITORY]
        )
        try:
            await repositories.push(METADATA_REPOSITORY, [metadata])
        except SinkError as e:
            await emitter.emit(Signal.error(f"Failed to push metadata: {e.message}"))
            return
        await emitter.emit(Signal.done())

    @activity.defn
    @auto_heartbeater
    async def extract_data(self, event_args: Dict[str, Any]) -> Dict[str, Any]:
        """Run one invocation of the extraction pass for the event's sync unit.

        The checkpoint is loaded from and saved to ``CheckpointStateStore``
        under ``event.checkpoint_id``. A cold rate window is used for every
        invocation.
        """
        event = ExtractionEvent.model_validate(event_args)
        emitter = self._emitter(event)

        try:
            handler = await self._load_handler(event)
        except (SyncError, ValueError) as e:
            logger.error(f"Failed to load source handler: {e}")
            await emitter.emit(Signal.error(str(e)))
            return emitter.last.model_dump(mode="json")

        registry = handler.record_types(event.scope)
        state_id = event.checkpoint_id
        state = await CheckpointStateStore.load(state_id, registry.names, event.scope)

        async def checkpoint(current) -> None:
            await CheckpointStateStore.save(state_id, current)

        orchestrator = ExtractionOrchestrator(
            registry=registry,
            tracker=RateWindowTracker(),
            repositories=self._repositories(
                handler,
                state_id,
                list(dict.fromkeys(strategy.repository for strategy in registry)),
            ),
            emitter=emitter,
            checkpoint=checkpoint,
            required_scope=handler.required_scope,
            clock=self.clock,
        )
        signal = await orchestrator.run(
            state,
            mode=event.mode,
            pass_start=event.is_pass_start,
            deadline=self._deadline(event),
            pass_id=self._pass_id(event),
        )
        return signal.model_dump(mode="json")
