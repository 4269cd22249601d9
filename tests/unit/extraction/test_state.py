from datetime import datetime, timezone

from hypothesis import given

from sync_sdk.extraction.models import SyncMode, SyncScope
from sync_sdk.extraction.state import ExtractionState
from sync_sdk.test_utils.extraction import FakeRecordType
from sync_sdk.test_utils.hypothesis.strategies.extraction import (
    extraction_state_strategy,
)

RECORD_TYPES = [t.value for t in FakeRecordType]


def test_initial_state():
    scope = SyncScope(org_name="acme", unit_name="widgets")
    state = ExtractionState.initial(FakeRecordType, scope)

    assert set(state.per_type) == set(RECORD_TYPES)
    assert not any(p.complete for p in state.per_type.values())
    assert all(p.page == 1 for p in state.per_type.values())
    assert state.scope == scope
    assert not state.has_pending()


def test_accessors_accept_enum_and_name():
    state = ExtractionState.initial(FakeRecordType)

    state.mark_complete(FakeRecordType.USERS, page=4)

    assert state.is_complete("users")
    assert state.get_page(FakeRecordType.USERS) == 4
    state.set_page("tasks", 2)
    assert state.get_page(FakeRecordType.TASKS) == 2


def test_pending_queue_is_fifo():
    state = ExtractionState.initial(FakeRecordType)
    state.enqueue_children(FakeRecordType.COMMENTS, ["a", "b"])
    state.enqueue_children(FakeRecordType.COMMENTS, [3])

    assert state.peek_pending(FakeRecordType.COMMENTS) == "a"
    assert state.pop_pending(FakeRecordType.COMMENTS) == "a"
    assert state.pending(FakeRecordType.COMMENTS) == ["b", "3"]
    assert state.has_pending(FakeRecordType.COMMENTS)
    assert not state.has_pending(FakeRecordType.USERS)


def test_is_finished_requires_empty_queues():
    state = ExtractionState.initial(FakeRecordType)
    for record_type in FakeRecordType:
        state.mark_complete(record_type)
    assert state.is_finished()

    state.enqueue_children(FakeRecordType.COMMENTS, ["1"])
    assert not state.is_finished()


def test_progress_percent():
    state = ExtractionState.initial(FakeRecordType)
    assert state.progress_percent() == 0

    state.mark_complete(FakeRecordType.USERS)

    assert state.progress_percent() == 33


def test_progress_ignores_types_no_longer_extracted():
    state = ExtractionState.initial(["users", "tasks", "milestones"])
    state.mark_complete("users")
    state.enqueue_children("milestones", ["1"])
    current = ["users", "tasks"]

    assert state.progress_percent(current) == 50
    assert state.progress_percent() == 33

    state.mark_complete("tasks")

    assert state.progress_percent(current) == 100
    assert state.is_finished(current)
    assert not state.is_finished()
    assert state.per_type.keys() == {"users", "tasks", "milestones"}


def test_incremental_reset_keeps_queues():
    started = datetime(2024, 5, 1, tzinfo=timezone.utc)
    state = ExtractionState.initial(FakeRecordType)
    for record_type in FakeRecordType:
        state.mark_complete(record_type, page=7)
    state.enqueue_children(FakeRecordType.COMMENTS, ["x", "y"])

    state.reset_for_incremental(started)

    assert all(not p.complete and p.page == 1 for p in state.per_type.values())
    assert state.pending(FakeRecordType.COMMENTS) == ["x", "y"]
    assert state.last_sync_started == started
    assert state.mode == SyncMode.INCREMENTAL


def test_changes_since_only_in_incremental_mode():
    last = datetime(2024, 4, 1, tzinfo=timezone.utc)
    state = ExtractionState.initial(FakeRecordType)
    state.last_successful_sync_started = last

    assert state.changes_since() is None

    state.reset_for_incremental(datetime(2024, 5, 1, tzinfo=timezone.utc))

    assert state.changes_since() == last


@given(extraction_state_strategy(RECORD_TYPES))
def test_checkpoint_survives_serialization(state: ExtractionState):
    restored = ExtractionState.model_validate(state.model_dump(mode="json"))

    assert restored == state
