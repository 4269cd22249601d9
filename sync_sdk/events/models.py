"""Events the host sends to the worker and signals the worker sends back."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from sync_sdk.extraction.models import SyncMode, SyncScope


class Phase(str, Enum):
    DISCOVER_SYNC_UNITS = "discover-sync-units"
    FETCH_METADATA = "fetch-metadata"
    EXTRACT_DATA = "extract-data"


class EventType(str, Enum):
    EXTRACTION_EXTERNAL_SYNC_UNITS_START = "EXTRACTION_EXTERNAL_SYNC_UNITS_START"
    EXTRACTION_METADATA_START = "EXTRACTION_METADATA_START"
    EXTRACTION_DATA_START = "EXTRACTION_DATA_START"
    EXTRACTION_DATA_CONTINUE = "EXTRACTION_DATA_CONTINUE"


EVENT_PHASES: Dict[EventType, Phase] = {
    EventType.EXTRACTION_EXTERNAL_SYNC_UNITS_START: Phase.DISCOVER_SYNC_UNITS,
    EventType.EXTRACTION_METADATA_START: Phase.FETCH_METADATA,
    EventType.EXTRACTION_DATA_START: Phase.EXTRACT_DATA,
    EventType.EXTRACTION_DATA_CONTINUE: Phase.EXTRACT_DATA,
}

# Prefix of the event names reported back to the host, per phase
PHASE_EVENT_PREFIX: Dict[Phase, str] = {
    Phase.DISCOVER_SYNC_UNITS: "EXTRACTION_EXTERNAL_SYNC_UNITS",
    Phase.FETCH_METADATA: "EXTRACTION_METADATA",
    Phase.EXTRACT_DATA: "EXTRACTION_DATA",
}


class ExtractionEvent(BaseModel):
    """One invocation request from the host.

    Attributes:
        event_type: What the host asks for; the phase is derived from it.
        credentials: Source credentials. Replaced by ``credential_guid`` when
            the event travels through the workflow engine.
        scope: Identifiers of the sync unit to extract.
        mode: Full or incremental pass.
        deadline: Approximate time at which the invocation is stopped.
        state_id: Key of the persisted checkpoint. Defaults to the unit id.
        pass_id: Identifier of the extraction pass, shared by every invocation
            of it. Defaults to the workflow run when invoked by the workflow.
        callback_url: Host endpoint receiving signals, when the host wants them
            pushed rather than returned.
    """

    event_type: EventType
    credentials: Dict[str, Any] = Field(default_factory=dict)
    credential_guid: Optional[str] = None
    scope: SyncScope = Field(default_factory=SyncScope)
    mode: SyncMode = SyncMode.FULL
    deadline: Optional[datetime] = None
    state_id: Optional[str] = None
    pass_id: Optional[str] = None
    callback_url: Optional[str] = None

    @property
    def phase(self) -> Phase:
        return EVENT_PHASES[self.event_type]

    @property
    def is_pass_start(self) -> bool:
        return self.event_type == EventType.EXTRACTION_DATA_START

    @property
    def checkpoint_id(self) -> str:
        return (
            self.state_id
            or self.scope.unit_id
            or self.scope.project_id
            or self.scope.unit_name
            or "default"
        )

    def continuation(self) -> "ExtractionEvent":
        """The event that resumes this pass in a new invocation."""
        return self.model_copy(
            update={"event_type": EventType.EXTRACTION_DATA_CONTINUE, "deadline": None}
        )


class SignalType(str, Enum):
    PROGRESS = "PROGRESS"
    DELAY = "DELAY"
    DONE = "DONE"
    ERROR = "ERROR"


class Signal(BaseModel):
    """Outcome of an invocation as reported to the host."""

    type: SignalType
    progress: Optional[int] = None
    delay_ms: Optional[int] = None
    message: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def progress_signal(cls, percent: int) -> "Signal":
        return cls(type=SignalType.PROGRESS, progress=percent)

    @classmethod
    def delay(cls, delay_ms: int) -> "Signal":
        return cls(type=SignalType.DELAY, delay_ms=delay_ms)

    @classmethod
    def done(cls, payload: Optional[Dict[str, Any]] = None) -> "Signal":
        return cls(type=SignalType.DONE, payload=payload or {})

    @classmethod
    def error(cls, message: str) -> "Signal":
        return cls(type=SignalType.ERROR, message=message)

    @property
    def is_terminal(self) -> bool:
        return self.type in (SignalType.DONE, SignalType.ERROR)

    def host_event_type(self, phase: Phase) -> str:
        return f"{PHASE_EVENT_PREFIX[phase]}_{self.type.value}"
