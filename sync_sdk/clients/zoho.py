from typing import Any, Dict, List, Optional

import httpx

from sync_sdk.clients.base import BaseClient
from sync_sdk.common.error_codes import CLIENT_ERRORS, TransportError
from sync_sdk.constants import PAGE_SIZE, ZOHO_API_BASE, ZOHO_RATE_LIMIT_WAIT
from sync_sdk.observability.logger_adaptor import get_logger

logger = get_logger(__name__)


class ZohoClient(BaseClient):
    """Page-at-a-time access to the Zoho Projects REST API.

    List endpoints page with ``index`` (1-based offset of the first item) and
    ``range`` (items per page, at most 100). Zoho answers an exhausted list
    with ``204 No Content``, which is read as an empty page.

    Args:
        credentials (Dict[str, Any]): ``{"token": ...}`` OAuth access token.
        api_base (str): API root URL.
        page_size (int): ``range`` sent with every list request.
    """

    def __init__(
        self,
        credentials: Optional[Dict[str, Any]] = None,
        api_base: str = ZOHO_API_BASE,
        page_size: int = PAGE_SIZE,
        rate_limit_wait: int = ZOHO_RATE_LIMIT_WAIT,
        **kwargs: Any,
    ):
        super().__init__(credentials, **kwargs)
        self.api_base = api_base.rstrip("/")
        self.page_size = min(page_size, 100)
        self.rate_limit_wait = rate_limit_wait
        self.headers: Dict[str, str] = {}

    async def load(self, credentials: Optional[Dict[str, Any]] = None) -> None:
        if credentials:
            self.credentials = credentials
        token = (
            self.credentials.get("token")
            or self.credentials.get("key")
            or self.credentials.get("access_token")
        )
        if not token:
            raise ValueError("Zoho access token is required in credentials")
        self.headers = {
            "Authorization": f"Zoho-oauthtoken {token}",
            "Content-Type": "application/json",
        }

    def _rate_limit_delay_ms(self, response: httpx.Response) -> Optional[int]:
        if response.status_code != httpx.codes.TOO_MANY_REQUESTS:
            return None
        retry_after = response.headers.get("retry-after")
        if retry_after and retry_after.isdigit():
            return int(retry_after) * 1000
        return self.rate_limit_wait * 1000

    async def _get_page(self, path: str, key: str, page: int) -> List[Dict[str, Any]]:
        response = await self.execute_http_get_request(
            f"{self.api_base}/{path}",
            headers=self.headers,
            params={"index": (page - 1) * self.page_size + 1, "range": self.page_size},
        )
        if response.status_code == httpx.codes.NO_CONTENT or not response.content:
            return []
        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(
                f"Invalid JSON from {path}: {e}",
                status_code=response.status_code,
                error_code=CLIENT_ERRORS["INVALID_RESPONSE"],
            ) from e
        items = data.get(key, []) if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise TransportError(
                f"Expected a '{key}' list from {path}",
                error_code=CLIENT_ERRORS["INVALID_RESPONSE"],
            )
        return items

    def _project_path(self, portal_id: str, project_id: str) -> str:
        return f"portal/{portal_id}/projects/{project_id}"

    async def get_users_page(
        self, portal_id: str, project_id: str, page: int
    ) -> List[Dict[str, Any]]:
        return await self._get_page(
            f"{self._project_path(portal_id, project_id)}/users/", "users", page
        )

    async def get_tasks_page(
        self, portal_id: str, project_id: str, page: int
    ) -> List[Dict[str, Any]]:
        return await self._get_page(
            f"{self._project_path(portal_id, project_id)}/tasks/", "tasks", page
        )

    async def get_issues_page(
        self, portal_id: str, project_id: str, page: int
    ) -> List[Dict[str, Any]]:
        """Issues of the project; Zoho lists them under ``bugs``."""
        return await self._get_page(
            f"{self._project_path(portal_id, project_id)}/issues/", "bugs", page
        )

    async def get_task_comments_page(
        self, portal_id: str, project_id: str, task_id: str, page: int
    ) -> List[Dict[str, Any]]:
        return await self._get_page(
            f"{self._project_path(portal_id, project_id)}/tasks/{task_id}/comments/",
            "comments",
            page,
        )

    async def get_issue_comments_page(
        self, portal_id: str, project_id: str, issue_id: str, page: int
    ) -> List[Dict[str, Any]]:
        return await self._get_page(
            f"{self._project_path(portal_id, project_id)}/issues/{issue_id}/comments/",
            "comments",
            page,
        )
