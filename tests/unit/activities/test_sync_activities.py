"""Unit tests for the extraction phase activities."""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import pytest
from temporalio.testing import ActivityEnvironment

from sync_sdk.activities import (
    METADATA_REPOSITORY,
    SyncActivities,
    json_repository_factory,
)
from sync_sdk.common.error_codes import RateLimitError
from sync_sdk.events.models import SignalType
from sync_sdk.extraction.fetcher import PaginatedFetcher
from sync_sdk.extraction.models import (
    ExternalSyncUnit,
    FetchOk,
    FetchResult,
    SyncScope,
)
from sync_sdk.extraction.strategies import RecordTypeRegistry
from sync_sdk.handlers import HandlerInterface
from sync_sdk.repositories import Normalizer, Repository
from sync_sdk.repositories.json import build_output_path
from sync_sdk.repositories.memory import InMemoryRepository
from sync_sdk.services.statestore import CheckpointStateStore, StateStore, StateType
from sync_sdk.test_utils.extraction import FakeRecordType, ScriptedStrategy, page_of
from sync_sdk.transformers import TransformerInterface


class PassThroughTransformer(TransformerInterface):
    def normalizers(self) -> Dict[str, Callable[[Any], Any]]:
        return {}


class MockHandler(HandlerInterface):
    """Handler serving scripted record types; scripts are shared across instances."""

    required_scope = ("org_name",)
    scripts: Dict[str, List[Any]] = {}
    loaded_with: List[Dict[str, Any]] = []

    def __init__(self):
        self.transformer = PassThroughTransformer()

    async def load(self, credentials: Dict[str, Any]) -> None:
        if not credentials.get("token"):
            raise ValueError("token is required")
        MockHandler.loaded_with.append(credentials)

    async def discover_sync_units(
        self, scope: SyncScope, fetcher: PaginatedFetcher
    ) -> FetchResult:
        async def page_fn(page: int) -> Any:
            entry = self.scripts["units"][page - 1]
            if isinstance(entry, Exception):
                raise entry
            return entry

        result = await fetcher.fetch_all(page_fn)
        if isinstance(result, FetchOk):
            result.items = [
                ExternalSyncUnit(id=str(u["id"]), name=u["name"], description="")
                for u in result.items
            ]
        return result

    async def fetch_metadata(self) -> Dict[str, Any]:
        return {"schema_version": "v0.2.0", "record_types": {}}

    def record_types(self, scope: SyncScope) -> RecordTypeRegistry:
        return RecordTypeRegistry(
            [
                ScriptedStrategy(FakeRecordType.USERS, self.scripts["users"]),
                ScriptedStrategy(FakeRecordType.TASKS, self.scripts["tasks"]),
                ScriptedStrategy(
                    FakeRecordType.COMMENTS,
                    parent=FakeRecordType.TASKS,
                    children=self.scripts["comments"],
                ),
            ]
        )


@pytest.fixture(autouse=True)
def scripts():
    MockHandler.scripts = {
        "units": [[{"id": 1, "name": "widgets"}]],
        "users": [page_of(2)],
        "tasks": [page_of(1, start=10)],
        "comments": {"10": [page_of(1, start=100)]},
    }
    MockHandler.loaded_with = []
    return MockHandler.scripts


@pytest.fixture
def repos() -> Dict[str, InMemoryRepository]:
    return {}


@pytest.fixture
def activities(repos: Dict[str, InMemoryRepository]) -> SyncActivities:
    def factory(
        sync_unit_id: str, item_type: str, normalize: Optional[Normalizer]
    ) -> Repository:
        return repos.setdefault(item_type, InMemoryRepository(item_type, normalize))

    return SyncActivities(handler_class=MockHandler, repository_factory=factory)


def event(event_type: str = "EXTRACTION_DATA_START", **overrides: Any) -> Dict[str, Any]:
    deadline = datetime.now(timezone.utc) + timedelta(hours=1)
    args = {
        "event_type": event_type,
        "credentials": {"token": "secret"},
        "scope": {"org_name": "acme", "unit_id": "unit-1"},
        "deadline": deadline.isoformat(),
    }
    args.update(overrides)
    return args


def test_interfaces_hold_only_what_the_activities_call():
    assert HandlerInterface.__abstractmethods__ == {
        "load",
        "discover_sync_units",
        "fetch_metadata",
        "record_types",
    }
    assert TransformerInterface.__abstractmethods__ == {"normalizers"}


class TestExtractData:
    async def test_full_pass(self, activities: SyncActivities, repos):
        result = await activities.extract_data(event())

        assert result["type"] == SignalType.DONE.value
        assert [r["id"] for r in repos["comments"].records] == [100]
        state = await CheckpointStateStore.load("unit-1", list(FakeRecordType))
        assert state.is_finished()
        assert state.last_successful_sync_started is not None

    async def test_resumes_after_rate_limit(
        self, activities: SyncActivities, repos, scripts
    ):
        scripts["tasks"] = [RateLimitError(delay_ms=2000, status_code=429)]

        result = await activities.extract_data(event())

        assert result["type"] == SignalType.DELAY.value
        assert result["delay_ms"] == 2000

        scripts["tasks"] = [page_of(1, start=10)]
        result = await activities.extract_data(event("EXTRACTION_DATA_CONTINUE"))

        assert result["type"] == SignalType.DONE.value
        assert len(repos["users"].records) == 2

    async def test_reads_credentials_from_state_store(self, activities: SyncActivities):
        await StateStore.save_state_object(
            "guid-1", {"token": "stored"}, StateType.CREDENTIALS
        )
        args = event(credential_guid="guid-1")
        args.pop("credentials")

        result = await activities.extract_data(args)

        assert result["type"] == SignalType.DONE.value
        assert MockHandler.loaded_with == [{"token": "stored"}]

    async def test_handler_load_failure_is_error(self, activities: SyncActivities):
        result = await activities.extract_data(event(credentials={}))

        assert result["type"] == SignalType.ERROR.value
        assert "token is required" in result["message"]

    async def test_missing_scope_is_error(self, activities: SyncActivities):
        result = await activities.extract_data(event(scope={"unit_id": "unit-1"}))

        assert result["type"] == SignalType.ERROR.value
        assert "org_name" in result["message"]

    async def test_passed_deadline_reports_progress(self, activities: SyncActivities):
        past = datetime.now(timezone.utc) - timedelta(seconds=1)

        result = await activities.extract_data(event(deadline=past.isoformat()))

        assert result["type"] == SignalType.PROGRESS.value
        assert result["progress"] == 0

    async def test_in_activity_environment(self, activities: SyncActivities):
        result = await ActivityEnvironment().run(activities.extract_data, event())

        assert result["type"] == SignalType.DONE.value

    async def test_writes_json_batches_by_default(self, local_storage):
        activities = SyncActivities(
            handler_class=MockHandler, repository_factory=json_repository_factory
        )

        result = await activities.extract_data(event())

        assert result["type"] == SignalType.DONE.value
        assert os.listdir(build_output_path("unit-1", "users")) == ["00001.jsonl"]

    async def test_resumed_invocation_keeps_earlier_batches(self, local_storage, scripts):
        activities = SyncActivities(
            handler_class=MockHandler, repository_factory=json_repository_factory
        )
        scripts["tasks"] = [page_of(2, start=10)]
        scripts["comments"] = {
            "10": [page_of(1, start=100)],
            "11": [RateLimitError(delay_ms=1000, status_code=429)],
        }

        result = await activities.extract_data(event())

        assert result["type"] == SignalType.DELAY.value
        comments_path = build_output_path("unit-1", "comments")
        assert os.listdir(comments_path) == ["00001.jsonl"]

        scripts["comments"]["11"] = [page_of(1, start=110)]
        result = await activities.extract_data(event("EXTRACTION_DATA_CONTINUE"))

        assert result["type"] == SignalType.DONE.value
        assert sorted(os.listdir(comments_path)) == ["00001.jsonl", "00002.jsonl"]

    async def test_retried_start_event_does_not_restart_the_pass(
        self, activities: SyncActivities, repos, scripts
    ):
        scripts["tasks"] = [RateLimitError(delay_ms=2000, status_code=429)]
        start = event(mode="incremental", pass_id="pass-1")

        result = await activities.extract_data(start)

        assert result["type"] == SignalType.DELAY.value
        assert len(repos["users"].records) == 2

        scripts["tasks"] = [page_of(1, start=10)]
        result = await activities.extract_data(start)

        assert result["type"] == SignalType.DONE.value
        assert len(repos["users"].records) == 2
        state = await CheckpointStateStore.load("unit-1", list(FakeRecordType))
        assert state.pass_id == "pass-1"


class TestDiscoverSyncUnits:
    async def test_lists_units(self, activities: SyncActivities):
        result = await activities.discover_sync_units(
            event("EXTRACTION_EXTERNAL_SYNC_UNITS_START")
        )

        assert result["type"] == SignalType.DONE.value
        assert result["payload"]["external_sync_units"] == [
            {
                "id": "1",
                "name": "widgets",
                "description": "",
                "item_count": None,
                "item_type": None,
            }
        ]

    async def test_rate_limited(self, activities: SyncActivities, scripts):
        scripts["units"] = [RateLimitError(delay_ms=5000, status_code=429)]

        result = await activities.discover_sync_units(
            event("EXTRACTION_EXTERNAL_SYNC_UNITS_START")
        )

        assert result["type"] == SignalType.DELAY.value
        assert result["delay_ms"] == 5000

    async def test_timeout_is_error(self, activities: SyncActivities):
        past = datetime.now(timezone.utc) - timedelta(seconds=1)

        result = await activities.discover_sync_units(
            event("EXTRACTION_EXTERNAL_SYNC_UNITS_START", deadline=past.isoformat())
        )

        assert result["type"] == SignalType.ERROR.value
        assert "Invocation timeout" in result["message"]


class TestFetchMetadata:
    async def test_pushes_metadata(self, activities: SyncActivities, repos):
        result = await activities.fetch_metadata(event("EXTRACTION_METADATA_START"))

        assert result["type"] == SignalType.DONE.value
        assert repos[METADATA_REPOSITORY].records == [
            {"schema_version": "v0.2.0", "record_types": {}}
        ]
