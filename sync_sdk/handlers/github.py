"""GitHub source: labels, assignees and issues of a repository, then issue comments."""

from enum import Enum
from typing import Any, Dict, List, Optional

from sync_sdk.clients.github import GitHubClient
from sync_sdk.common.error_codes import ValidationError
from sync_sdk.extraction.fetcher import PaginatedFetcher
from sync_sdk.extraction.models import ExternalSyncUnit, FetchOk, FetchResult, SyncScope
from sync_sdk.extraction.state import ExtractionState
from sync_sdk.extraction.strategies import RecordTypeRegistry, RecordTypeStrategy
from sync_sdk.handlers import HandlerInterface
from sync_sdk.handlers.github_metadata import EXTERNAL_DOMAIN_METADATA
from sync_sdk.observability.logger_adaptor import get_logger
from sync_sdk.transformers.github import GitHubTransformer

logger = get_logger(__name__)


class GitHubRecordType(str, Enum):
    LABELS = "labels"
    ASSIGNEES = "assignees"
    ISSUES = "issues"
    COMMENTS = "comments"


class GitHubStrategy(RecordTypeStrategy):
    def __init__(self, client: GitHubClient, scope: SyncScope):
        self.client = client
        self.org = scope.org_name
        self.repo = scope.unit_name


class LabelsStrategy(GitHubStrategy):
    record_type = GitHubRecordType.LABELS

    async def fetch_page(self, page: int, state: ExtractionState) -> Any:
        return await self.client.get_repo_labels_page(self.org, self.repo, page)


class AssigneesStrategy(GitHubStrategy):
    record_type = GitHubRecordType.ASSIGNEES

    async def fetch_page(self, page: int, state: ExtractionState) -> Any:
        return await self.client.get_repo_assignees_page(self.org, self.repo, page)


class IssuesStrategy(GitHubStrategy):
    """Issues of every state; GitHub lists pull requests here too, they are dropped."""

    record_type = GitHubRecordType.ISSUES

    async def fetch_page(self, page: int, state: ExtractionState) -> Any:
        return await self.client.get_repo_issues_page(
            self.org, self.repo, page, since=state.changes_since()
        )

    def prepare(self, items: List[Any], parent_id: Optional[str] = None) -> List[Any]:
        return [item for item in items if "pull_request" not in item]

    def extract_child_ids(self, items: List[Any]) -> List[str]:
        return [str(item["number"]) for item in items]


class CommentsStrategy(GitHubStrategy):
    record_type = GitHubRecordType.COMMENTS
    parent = GitHubRecordType.ISSUES

    async def fetch_children_page(
        self, parent_id: str, page: int, state: ExtractionState
    ) -> Any:
        return await self.client.get_issue_comments_page(
            self.org, self.repo, parent_id, page, since=state.changes_since()
        )


def to_sync_unit(repo: Dict[str, Any]) -> ExternalSyncUnit:
    return ExternalSyncUnit(
        id=str(repo["id"]),
        name=repo["name"],
        description=repo.get("description") or repo["name"],
        item_count=repo.get("open_issues_count"),
        item_type="open issues",
    )


class GitHubHandler(HandlerInterface):
    """Handler for a GitHub organisation; one repository is one sync unit."""

    required_scope = ("org_name", "unit_name")

    def __init__(self, client: Optional[GitHubClient] = None):
        self.client = client or GitHubClient()
        self.transformer = GitHubTransformer()

    async def load(self, credentials: Dict[str, Any]) -> None:
        await self.client.load(credentials=credentials)

    async def discover_sync_units(
        self, scope: SyncScope, fetcher: PaginatedFetcher
    ) -> FetchResult:
        if not scope.org_name:
            raise ValidationError("Missing required scope identifiers: org_name")
        result = await fetcher.fetch_all(
            lambda page: self.client.get_org_repos_page(scope.org_name, page)
        )
        if isinstance(result, FetchOk):
            result.items = [to_sync_unit(repo) for repo in result.items]
        return result

    async def fetch_metadata(self) -> Dict[str, Any]:
        return EXTERNAL_DOMAIN_METADATA

    def record_types(self, scope: SyncScope) -> RecordTypeRegistry:
        return RecordTypeRegistry(
            [
                LabelsStrategy(self.client, scope),
                AssigneesStrategy(self.client, scope),
                IssuesStrategy(self.client, scope),
                CommentsStrategy(self.client, scope),
            ]
        )
