from datetime import datetime, timezone
from unittest.mock import AsyncMock

import httpx
import pytest

from sync_sdk.clients.github import GitHubClient
from sync_sdk.common.error_codes import ValidationError
from sync_sdk.common.rate_window import RateWindowTracker
from sync_sdk.events.emitter import RecordingSignalEmitter
from sync_sdk.events.models import SignalType
from sync_sdk.extraction.fetcher import PaginatedFetcher
from sync_sdk.extraction.models import ExternalSyncUnit, FetchOk, SyncMode, SyncScope
from sync_sdk.extraction.orchestrator import ExtractionOrchestrator
from sync_sdk.extraction.state import ExtractionState
from sync_sdk.handlers.github import GitHubHandler, GitHubRecordType
from sync_sdk.handlers.github_metadata import EXTERNAL_DOMAIN_METADATA
from sync_sdk.repositories import RepositoryRegistry
from sync_sdk.repositories.memory import InMemoryRepository

SCOPE = SyncScope(org_name="acme", unit_name="widgets")


@pytest.fixture
def client() -> AsyncMock:
    return AsyncMock(spec=GitHubClient)


@pytest.fixture
def handler(client: AsyncMock) -> GitHubHandler:
    return GitHubHandler(client=client)


class TestGitHubHandler:
    def test_record_types_in_extraction_order(self, handler: GitHubHandler):
        registry = handler.record_types(SCOPE)

        assert registry.names == ["labels", "assignees", "issues", "comments"]
        assert [s.name for s in registry.children_of(GitHubRecordType.ISSUES)] == [
            "comments"
        ]

    def test_every_record_type_has_a_normalizer(self, handler: GitHubHandler):
        registry = handler.record_types(SCOPE)

        assert set(registry.names) <= set(handler.transformer.normalizers())

    async def test_issues_drop_pull_requests(self, handler: GitHubHandler):
        issues = handler.record_types(SCOPE).get(GitHubRecordType.ISSUES)
        items = [{"number": 1}, {"number": 2, "pull_request": {}}]

        kept = issues.prepare(items)

        assert kept == [{"number": 1}]
        assert issues.extract_child_ids(kept) == ["1"]

    async def test_issues_since_only_in_incremental_pass(
        self, handler: GitHubHandler, client: AsyncMock
    ):
        issues = handler.record_types(SCOPE).get(GitHubRecordType.ISSUES)
        last = datetime(2024, 4, 1, tzinfo=timezone.utc)
        state = ExtractionState.initial(GitHubRecordType, SCOPE)
        state.last_successful_sync_started = last

        await issues.fetch_page(1, state)
        state.reset_for_incremental(datetime(2024, 5, 1, tzinfo=timezone.utc))
        await issues.fetch_page(1, state)

        first, second = client.get_repo_issues_page.await_args_list
        assert first.kwargs["since"] is None
        assert second.kwargs["since"] == last
        assert second.args == ("acme", "widgets", 1)

    async def test_comments_fetched_per_issue(
        self, handler: GitHubHandler, client: AsyncMock
    ):
        comments = handler.record_types(SCOPE).get(GitHubRecordType.COMMENTS)
        state = ExtractionState.initial(GitHubRecordType, SCOPE)

        await comments.fetch_children_page("7", 2, state)

        client.get_issue_comments_page.assert_awaited_once_with(
            "acme", "widgets", "7", 2, since=None
        )

    async def test_discover_maps_repositories(
        self, handler: GitHubHandler, client: AsyncMock
    ):
        client.get_org_repos_page.side_effect = [
            [{"id": 1, "name": "widgets", "description": None, "open_issues_count": 4}]
        ]
        fetcher = PaginatedFetcher(RateWindowTracker(), page_size=100)

        result = await handler.discover_sync_units(SyncScope(org_name="acme"), fetcher)

        assert isinstance(result, FetchOk)
        assert result.items == [
            ExternalSyncUnit(
                id="1",
                name="widgets",
                description="widgets",
                item_count=4,
                item_type="open issues",
            )
        ]
        client.get_org_repos_page.assert_awaited_once_with("acme", 1)

    async def test_discover_requires_org(self, handler: GitHubHandler):
        with pytest.raises(ValidationError):
            await handler.discover_sync_units(
                SyncScope(), PaginatedFetcher(RateWindowTracker())
            )

    async def test_fetch_metadata(self, handler: GitHubHandler):
        assert await handler.fetch_metadata() == EXTERNAL_DOMAIN_METADATA


async def test_full_pass_against_github_api():
    """Drives the orchestrator through the real client over a mocked API."""
    routes = {
        "/repos/acme/widgets/labels": [{"id": 10, "name": "bug", "color": "f00"}],
        "/repos/acme/widgets/assignees": [{"login": "octocat"}],
        "/repos/acme/widgets/issues": [
            {"url": "u/1", "number": 1, "title": "One"},
            {"url": "u/2", "number": 2, "pull_request": {}},
        ],
        "/repos/acme/widgets/issues/1/comments": [
            {"id": 100, "body": "_Posted from DevRev_: hi"}
        ],
    }

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["page"] != "1":
            return httpx.Response(200, json=[])
        return httpx.Response(200, json=routes[request.url.path])

    client = GitHubClient(
        credentials={"token": "ghp_x"},
        api_base="https://api.github.test",
        base_wait_time=0,
        transport=httpx.MockTransport(handler),
    )
    github = GitHubHandler(client=client)
    await github.load({"token": "ghp_x"})
    normalizers = github.transformer.normalizers()
    repos = {
        name: InMemoryRepository(name, normalizers[name])
        for name in github.record_types(SCOPE).names
    }
    tracker = RateWindowTracker()
    orchestrator = ExtractionOrchestrator(
        github.record_types(SCOPE),
        tracker,
        RepositoryRegistry(list(repos.values())),
        RecordingSignalEmitter(),
        required_scope=github.required_scope,
        fetcher=PaginatedFetcher(tracker, page_size=100),
    )
    state = ExtractionState.initial(GitHubRecordType, SCOPE)

    signal = await orchestrator.run(state, mode=SyncMode.FULL)

    assert signal.type == SignalType.DONE
    assert [r["id"] for r in repos["issues"].records] == ["u/1"]
    assert repos["comments"].records[0]["data"]["body"] == ["hi"]
    assert repos["labels"].records[0]["data"]["color"] == "#f00"
    assert tracker.request_count == 4
