from abc import ABC, abstractmethod
from typing import List, Optional

import httpx

from sync_sdk.common.error_codes import TransportError
from sync_sdk.constants import HTTP_TIMEOUT
from sync_sdk.events.models import Phase, Signal
from sync_sdk.observability.logger_adaptor import get_logger

logger = get_logger(__name__)


class SignalEmitter(ABC):
    """Delivers invocation outcomes to the host."""

    @abstractmethod
    async def emit(self, signal: Signal) -> None:
        pass


class RecordingSignalEmitter(SignalEmitter):
    """Keeps every emitted signal, optionally forwarding it to another emitter.

    The activities return ``last`` to the workflow, which acts as the host.
    """

    def __init__(self, forward_to: Optional[SignalEmitter] = None):
        self.signals: List[Signal] = []
        self.forward_to = forward_to

    async def emit(self, signal: Signal) -> None:
        logger.info(f"Emitting {signal.type.value} signal")
        self.signals.append(signal)
        if self.forward_to:
            await self.forward_to.emit(signal)

    @property
    def last(self) -> Optional[Signal]:
        return self.signals[-1] if self.signals else None


class CallbackSignalEmitter(SignalEmitter):
    """Posts signals to the host's callback endpoint.

    Args:
        callback_url (str): Endpoint receiving ``{"event_type", "event_data"}``.
        phase (Phase): Phase the signals belong to; selects the event name.
        timeout (int): Request timeout in seconds.
    """

    def __init__(self, callback_url: str, phase: Phase, timeout: int = HTTP_TIMEOUT):
        self.callback_url = callback_url
        self.phase = phase
        self.timeout = timeout

    async def emit(self, signal: Signal) -> None:
        body = {
            "event_type": signal.host_event_type(self.phase),
            "event_data": signal.model_dump(mode="json", exclude_none=True),
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.callback_url, json=body)
        except httpx.RequestError as e:
            raise TransportError(f"Failed to deliver signal to host: {e}") from e

        if not response.is_success:
            raise TransportError(
                f"Host rejected {body['event_type']} with status {response.status_code}",
                status_code=response.status_code,
            )
