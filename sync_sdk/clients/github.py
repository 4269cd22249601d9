import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from sync_sdk.clients.base import BaseClient
from sync_sdk.common.error_codes import CLIENT_ERRORS, TransportError
from sync_sdk.constants import GITHUB_API_BASE, GITHUB_API_VERSION, PAGE_SIZE
from sync_sdk.observability.logger_adaptor import get_logger

logger = get_logger(__name__)


def format_since(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class GitHubClient(BaseClient):
    """Page-at-a-time access to the GitHub REST API.

    Every method returns the raw items of a single page; walking the pages is
    left to ``PaginatedFetcher`` so each request passes through the rate window.

    Args:
        credentials (Dict[str, Any]): ``{"token": ...}`` personal access token.
        api_base (str): API root URL.
        page_size (int): ``per_page`` sent with every list request.
    """

    def __init__(
        self,
        credentials: Optional[Dict[str, Any]] = None,
        api_base: str = GITHUB_API_BASE,
        page_size: int = PAGE_SIZE,
        **kwargs: Any,
    ):
        super().__init__(credentials, **kwargs)
        self.api_base = api_base.rstrip("/")
        self.page_size = page_size
        self.headers: Dict[str, str] = {}

    async def load(self, credentials: Optional[Dict[str, Any]] = None) -> None:
        if credentials:
            self.credentials = credentials
        token = self.credentials.get("token") or self.credentials.get("key")
        if not token:
            raise ValueError("GitHub token is required in credentials")
        self.headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {token}",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    def _rate_limit_delay_ms(self, response: httpx.Response) -> Optional[int]:
        exhausted = (
            response.status_code == httpx.codes.FORBIDDEN
            and response.headers.get("x-ratelimit-remaining") == "0"
        )
        if response.status_code != httpx.codes.TOO_MANY_REQUESTS and not exhausted:
            return None

        retry_after = response.headers.get("Retry-After")
        if retry_after and retry_after.isdigit():
            return int(retry_after) * 1000
        reset = response.headers.get("x-ratelimit-reset")
        if reset and reset.isdigit():
            return max(0, int(reset) - int(time.time())) * 1000
        return self.base_wait_time * 1000

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self.execute_http_get_request(
            f"{self.api_base}/{path}", headers=self.headers, params=params
        )
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                f"Invalid JSON from {path}: {e}",
                status_code=response.status_code,
                error_code=CLIENT_ERRORS["INVALID_RESPONSE"],
            ) from e

    async def _get_page(
        self, path: str, page: int, params: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        query = {k: v for k, v in (params or {}).items() if v is not None}
        query.update({"per_page": self.page_size, "page": page})
        data = await self._get(path, query)
        if not isinstance(data, list):
            raise TransportError(
                f"Expected a list from {path}, got {type(data).__name__}",
                error_code=CLIENT_ERRORS["INVALID_RESPONSE"],
            )
        return data

    async def get_org_repos_page(self, org: str, page: int) -> List[Dict[str, Any]]:
        return await self._get_page(f"orgs/{org}/repos", page)

    async def get_repo_labels_page(
        self, org: str, repo: str, page: int
    ) -> List[Dict[str, Any]]:
        return await self._get_page(f"repos/{org}/{repo}/labels", page)

    async def get_repo_assignees_page(
        self, org: str, repo: str, page: int
    ) -> List[Dict[str, Any]]:
        return await self._get_page(f"repos/{org}/{repo}/assignees", page)

    async def get_repo_issues_page(
        self, org: str, repo: str, page: int, since: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        """Issues and pull requests of every state, updated after ``since``."""
        return await self._get_page(
            f"repos/{org}/{repo}/issues",
            page,
            {"state": "all", "since": format_since(since)},
        )

    async def get_issue_comments_page(
        self,
        org: str,
        repo: str,
        issue_number: str,
        page: int,
        since: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        return await self._get_page(
            f"repos/{org}/{repo}/issues/{issue_number}/comments",
            page,
            {"since": format_since(since)},
        )
