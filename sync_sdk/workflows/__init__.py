"""Workflow playing the host for the extraction phases.

The workflow invokes the activity of the event's phase. For data extraction it
keeps re-invoking ``extract_data`` with a continuation event until the pass
reports ``DONE`` or ``ERROR``, waiting out every ``DELAY`` with a durable
timer.
"""

import asyncio
from datetime import timedelta
from typing import Any, Callable, Dict, Sequence, Type

from temporalio import workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ApplicationError

from sync_sdk.activities import SyncActivities
from sync_sdk.common.error_codes import TEMPORAL_ERRORS
from sync_sdk.constants import (
    HEARTBEAT_TIMEOUT,
    MAX_INVOCATIONS_PER_PASS,
    START_TO_CLOSE_TIMEOUT,
)
from sync_sdk.events.models import ExtractionEvent, Phase, Signal, SignalType
from sync_sdk.observability.logger_adaptor import get_logger

logger = get_logger(__name__)


@workflow.defn
class SyncWorkflow:
    """Runs one phase of an extraction for a sync unit.

    Attributes:
        activities_cls (Type[SyncActivities]): The activities class used by the
            workflow.
        default_heartbeat_timeout (timedelta): Heartbeat timeout of activities.
        default_start_to_close_timeout (timedelta): Length of one invocation.
        max_invocations (int): Invocations allowed for one extraction pass.
    """

    activities_cls: Type[SyncActivities] = SyncActivities

    default_heartbeat_timeout: timedelta = HEARTBEAT_TIMEOUT
    default_start_to_close_timeout: timedelta = START_TO_CLOSE_TIMEOUT
    max_invocations: int = MAX_INVOCATIONS_PER_PASS

    @staticmethod
    def get_activities(activities: SyncActivities) -> Sequence[Callable[..., Any]]:
        return [
            activities.discover_sync_units,
            activities.fetch_metadata,
            activities.extract_data,
        ]

    async def _invoke(
        self, activity_method: Callable[..., Any], event: ExtractionEvent
    ) -> Signal:
        result = await workflow.execute_activity_method(
            activity_method,
            args=[event.model_dump(mode="json")],
            retry_policy=RetryPolicy(maximum_attempts=3, backoff_coefficient=2),
            start_to_close_timeout=self.default_start_to_close_timeout,
            heartbeat_timeout=self.default_heartbeat_timeout,
        )
        return Signal.model_validate(result)

    def _finish(self, signal: Signal) -> Dict[str, Any]:
        if signal.type == SignalType.ERROR:
            raise ApplicationError(signal.message or "Extraction failed", non_retryable=True)
        return signal.model_dump(mode="json")

    @workflow.run
    async def run(self, event_args: Dict[str, Any]) -> Dict[str, Any]:
        """Run the phase requested by ``event_args``.

        Args:
            event_args (Dict[str, Any]): An ``ExtractionEvent`` as a dict.

        Returns:
            Dict[str, Any]: The final ``DONE`` signal, or the ``DELAY`` signal of
            a rate-limited sync unit discovery.

        Raises:
            ApplicationError: If the phase ends with an ``ERROR`` signal or the
                pass needs more than ``max_invocations`` invocations.
        """
        event = ExtractionEvent.model_validate(event_args)
        logger.info(f"Starting {event.phase.value} for {event.checkpoint_id}")

        if event.phase == Phase.DISCOVER_SYNC_UNITS:
            return self._finish(
                await self._invoke(self.activities_cls.discover_sync_units, event)
            )
        if event.phase == Phase.FETCH_METADATA:
            return self._finish(
                await self._invoke(self.activities_cls.fetch_metadata, event)
            )

        for invocation in range(1, self.max_invocations + 1):
            signal = await self._invoke(self.activities_cls.extract_data, event)
            if signal.is_terminal:
                logger.info(
                    f"Extraction pass ended with {signal.type.value} after {invocation} invocations"
                )
                return self._finish(signal)

            if signal.type == SignalType.DELAY:
                logger.info(f"Rate limited, resuming in {signal.delay_ms} ms")
                await asyncio.sleep((signal.delay_ms or 0) / 1000)
            event = event.continuation()

        raise ApplicationError(
            str(TEMPORAL_ERRORS["PASS_INVOCATION_LIMIT"]), non_retryable=True
        )
