"""Zoho Projects source: users, tasks and issues of a project, then their comments.

Task comments and issue comments are two record types with different parents
that share the ``comments`` repository; each comment records its parent.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sync_sdk.clients.zoho import ZohoClient
from sync_sdk.common.error_codes import ValidationError
from sync_sdk.extraction.fetcher import PaginatedFetcher
from sync_sdk.extraction.models import ExternalSyncUnit, FetchOk, FetchResult, SyncScope
from sync_sdk.extraction.state import ExtractionState
from sync_sdk.extraction.strategies import RecordTypeRegistry, RecordTypeStrategy
from sync_sdk.handlers import HandlerInterface
from sync_sdk.handlers.zoho_metadata import EXTERNAL_DOMAIN_METADATA
from sync_sdk.observability.logger_adaptor import get_logger
from sync_sdk.transformers.zoho import ZohoTransformer

logger = get_logger(__name__)


class ZohoRecordType(str, Enum):
    USERS = "users"
    TASKS = "tasks"
    ISSUES = "issues"
    TASK_COMMENTS = "task_comments"
    ISSUE_COMMENTS = "issue_comments"


def updated_after(item: Dict[str, Any], key: str, since: Optional[datetime]) -> bool:
    """Whether ``item`` changed after ``since``; items without the field are kept."""
    if since is None or item.get(key) is None:
        return True
    return int(item[key]) > since.timestamp() * 1000


class ZohoStrategy(RecordTypeStrategy):
    def __init__(self, client: ZohoClient, scope: SyncScope):
        self.client = client
        self.portal_id = scope.portal_id
        self.project_id = scope.project_id
        self.since: Optional[datetime] = None


class UsersStrategy(ZohoStrategy):
    record_type = ZohoRecordType.USERS

    async def fetch_page(self, page: int, state: ExtractionState) -> Any:
        return await self.client.get_users_page(self.portal_id, self.project_id, page)


class ChangeFilteredStrategy(ZohoStrategy):
    """Primary type filtered on the record update time held in ``updated_key``.

    Zoho list endpoints take no change filter, so ``prepare`` drops records
    not updated since ``since``, which ``fetch_page`` reads from the state.
    """

    updated_key: str

    def prepare(self, items: List[Any], parent_id: Optional[str] = None) -> List[Any]:
        return [
            item for item in items if updated_after(item, self.updated_key, self.since)
        ]


class TasksStrategy(ChangeFilteredStrategy):
    record_type = ZohoRecordType.TASKS
    updated_key = "last_updated_time_long"

    async def fetch_page(self, page: int, state: ExtractionState) -> Any:
        self.since = state.changes_since()
        return await self.client.get_tasks_page(self.portal_id, self.project_id, page)

    def extract_child_ids(self, items: List[Any]) -> List[str]:
        return [str(item.get("id_string") or item["id"]) for item in items]


class IssuesStrategy(ChangeFilteredStrategy):
    record_type = ZohoRecordType.ISSUES
    updated_key = "updated_time_long"

    async def fetch_page(self, page: int, state: ExtractionState) -> Any:
        self.since = state.changes_since()
        return await self.client.get_issues_page(self.portal_id, self.project_id, page)

    def extract_child_ids(self, items: List[Any]) -> List[str]:
        return [str(item["id"]) for item in items]


class CommentsStrategy(ZohoStrategy):
    sink_name = "comments"
    parent_type: str

    def prepare(self, items: List[Any], parent_id: Optional[str] = None) -> List[Any]:
        return [
            {**item, "parent_type": self.parent_type, "parent_id": parent_id}
            for item in items
        ]


class TaskCommentsStrategy(CommentsStrategy):
    record_type = ZohoRecordType.TASK_COMMENTS
    parent = ZohoRecordType.TASKS
    parent_type = "task"

    async def fetch_children_page(
        self, parent_id: str, page: int, state: ExtractionState
    ) -> Any:
        return await self.client.get_task_comments_page(
            self.portal_id, self.project_id, parent_id, page
        )


class IssueCommentsStrategy(CommentsStrategy):
    record_type = ZohoRecordType.ISSUE_COMMENTS
    parent = ZohoRecordType.ISSUES
    parent_type = "issue"

    async def fetch_children_page(
        self, parent_id: str, page: int, state: ExtractionState
    ) -> Any:
        return await self.client.get_issue_comments_page(
            self.portal_id, self.project_id, parent_id, page
        )


class ZohoHandler(HandlerInterface):
    """Handler for a Zoho Projects project, addressed by portal and project id.

    The organisation of the connection is the only sync unit.
    """

    required_scope = ("portal_id", "project_id")

    def __init__(self, client: Optional[ZohoClient] = None):
        self.client = client or ZohoClient()
        self.transformer = ZohoTransformer()

    async def load(self, credentials: Dict[str, Any]) -> None:
        await self.client.load(credentials=credentials)

    async def discover_sync_units(
        self, scope: SyncScope, fetcher: PaginatedFetcher
    ) -> FetchResult:
        missing = scope.missing(["org_id", "org_name"])
        if missing:
            raise ValidationError(
                f"Missing required scope identifiers: {', '.join(missing)}"
            )
        unit = ExternalSyncUnit(
            id=scope.org_id,
            name=scope.org_name,
            description=f"zoho organization: {scope.org_name}",
        )
        logger.info(f"Zoho organization {scope.org_name} is the sync unit")
        return FetchOk(items=[unit])

    async def fetch_metadata(self) -> Dict[str, Any]:
        return EXTERNAL_DOMAIN_METADATA

    def record_types(self, scope: SyncScope) -> RecordTypeRegistry:
        return RecordTypeRegistry(
            [
                UsersStrategy(self.client, scope),
                TasksStrategy(self.client, scope),
                IssuesStrategy(self.client, scope),
                TaskCommentsStrategy(self.client, scope),
                IssueCommentsStrategy(self.client, scope),
            ]
        )
