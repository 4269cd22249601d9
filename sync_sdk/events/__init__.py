from sync_sdk.events.emitter import (
    CallbackSignalEmitter,
    RecordingSignalEmitter,
    SignalEmitter,
)
from sync_sdk.events.models import EventType, ExtractionEvent, Phase, Signal, SignalType

__all__ = [
    "CallbackSignalEmitter",
    "EventType",
    "ExtractionEvent",
    "Phase",
    "RecordingSignalEmitter",
    "Signal",
    "SignalEmitter",
    "SignalType",
]
