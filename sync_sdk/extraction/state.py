"""Typed checkpoint of an extraction pass.

The state is mutated in place by the orchestrator and persisted through
``sync_sdk.services.statestore.CheckpointStateStore`` after every completed
step, so it is always safe to save mid-pass.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, Field

from sync_sdk.extraction.models import SyncMode, SyncScope

RecordTypeKey = Union[str, Enum]


def type_key(record_type: RecordTypeKey) -> str:
    return record_type.value if isinstance(record_type, Enum) else str(record_type)


class TypeProgress(BaseModel):
    complete: bool = False
    page: int = 1


class ExtractionState(BaseModel):
    """Per-type completion, pending dependent-fetch queues and sync timestamps.

    ``pending_child_ids`` is keyed by the dependent record type and holds the
    identifiers of parent records whose dependent records are still to be
    fetched, oldest first. ``pass_id`` names the pass that last started on
    this checkpoint.
    """

    per_type: Dict[str, TypeProgress] = Field(default_factory=dict)
    pending_child_ids: Dict[str, List[str]] = Field(default_factory=dict)
    last_sync_started: Optional[datetime] = None
    last_successful_sync_started: Optional[datetime] = None
    scope: SyncScope = Field(default_factory=SyncScope)
    mode: SyncMode = SyncMode.FULL
    pass_id: Optional[str] = None

    @classmethod
    def initial(
        cls,
        record_types: Iterable[RecordTypeKey],
        scope: Optional[SyncScope] = None,
    ) -> "ExtractionState":
        state = cls(scope=scope or SyncScope())
        state.ensure_types(record_types)
        return state

    def ensure_types(self, record_types: Iterable[RecordTypeKey]) -> None:
        """Add progress entries for types the checkpoint does not know yet."""
        for record_type in record_types:
            self.per_type.setdefault(type_key(record_type), TypeProgress())

    def _progress(self, record_type: RecordTypeKey) -> TypeProgress:
        return self.per_type.setdefault(type_key(record_type), TypeProgress())

    def is_complete(self, record_type: RecordTypeKey) -> bool:
        return self._progress(record_type).complete

    def mark_complete(
        self, record_type: RecordTypeKey, page: Optional[int] = None
    ) -> None:
        progress = self._progress(record_type)
        progress.complete = True
        if page is not None:
            progress.page = page

    def get_page(self, record_type: RecordTypeKey) -> int:
        return self._progress(record_type).page

    def set_page(self, record_type: RecordTypeKey, page: int) -> None:
        self._progress(record_type).page = page

    def pending(self, record_type: RecordTypeKey) -> List[str]:
        return self.pending_child_ids.setdefault(type_key(record_type), [])

    def has_pending(self, record_type: Optional[RecordTypeKey] = None) -> bool:
        if record_type is None:
            return any(self.pending_child_ids.values())
        return bool(self.pending_child_ids.get(type_key(record_type)))

    def enqueue_children(self, record_type: RecordTypeKey, ids: Iterable[str]) -> None:
        self.pending(record_type).extend(str(i) for i in ids)

    def peek_pending(self, record_type: RecordTypeKey) -> Optional[str]:
        queue = self.pending(record_type)
        return queue[0] if queue else None

    def pop_pending(self, record_type: RecordTypeKey) -> str:
        return self.pending(record_type).pop(0)

    def _done(self, key: str) -> bool:
        progress = self.per_type.get(key)
        return progress is not None and progress.complete

    def _keys(self, record_types: Optional[Iterable[RecordTypeKey]]) -> List[str]:
        if record_types is None:
            return list(self.per_type)
        return [type_key(record_type) for record_type in record_types]

    def is_finished(
        self, record_types: Optional[Iterable[RecordTypeKey]] = None
    ) -> bool:
        """True when every type is complete and no dependent fetch is pending.

        Only ``record_types`` are considered when given, so entries left in the
        checkpoint by types the source no longer extracts are ignored.
        """
        keys = self._keys(record_types)
        if not all(self._done(key) for key in keys):
            return False
        if record_types is None:
            return not self.has_pending()
        return not any(self.pending_child_ids.get(key) for key in keys)

    def progress_percent(
        self, record_types: Optional[Iterable[RecordTypeKey]] = None
    ) -> int:
        """Share of completed types, over ``record_types`` when given."""
        keys = self._keys(record_types)
        if not keys:
            return 0
        done = sum(1 for key in keys if self._done(key))
        return int(done * 100 / len(keys))

    def changes_since(self) -> Optional[datetime]:
        """Lower bound for source-side change filters; None outside incremental passes."""
        if self.mode != SyncMode.INCREMENTAL:
            return None
        return self.last_successful_sync_started

    def reset_for_incremental(self, started_at: datetime) -> None:
        """Start an incremental pass: every type is re-fetched, queues are kept."""
        for progress in self.per_type.values():
            progress.complete = False
            progress.page = 1
        self.mode = SyncMode.INCREMENTAL
        self.last_sync_started = started_at
