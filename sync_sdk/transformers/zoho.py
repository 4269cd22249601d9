"""Normalization of Zoho Projects records into repository items."""

import re
from typing import Any, Callable, Dict, Optional

from sync_sdk.extraction.models import NormalizedItem
from sync_sdk.transformers import TransformerInterface

# Zoho does not report creation dates for users
DEFAULT_DATE = "1970-01-01T00:00:00Z"

CLOSING_DIV = re.compile(r"</div>")


def transform_html_content(content: Optional[str]) -> Optional[str]:
    """Flatten Zoho's ``<div>`` blocks into lines of plain text."""
    if not content:
        return None
    return CLOSING_DIV.sub("\n", content.replace("<div>", "")).strip()


def _type_of(value: Any) -> Optional[str]:
    return value.get("type") if isinstance(value, dict) else None


def _id_of(value: Any) -> Optional[str]:
    return str(value["id"]) if isinstance(value, dict) and "id" in value else None


def normalize_user(user: Dict[str, Any]) -> NormalizedItem:
    return NormalizedItem(
        id=str(user["id"]),
        created_date=DEFAULT_DATE,
        modified_date=DEFAULT_DATE,
        data={
            "name": user.get("name"),
            "email": user.get("email"),
            "profile_type": user.get("profile_type"),
            "role": user.get("role"),
            "active": user.get("active"),
        },
    )


def normalize_task(task: Dict[str, Any]) -> NormalizedItem:
    status = task.get("status") or {}
    owners = (task.get("details") or {}).get("owners") or []
    return NormalizedItem(
        id=str(task["id"]),
        created_date=task.get("created_time") or DEFAULT_DATE,
        modified_date=task.get("last_updated_time") or DEFAULT_DATE,
        data={
            "name": task.get("name"),
            "description": [transform_html_content(task.get("description"))],
            "status": _type_of(status),
            "status_id": _id_of(status),
            "status_name": status.get("name"),
            "priority": task.get("priority"),
            "owners": [o.get("zpuid") or o.get("id") for o in owners],
            "created_by": task.get("created_by"),
            "percent_complete": task.get("percent_complete"),
            "completed": task.get("completed"),
            "start_date": task.get("start_date"),
            "end_date": task.get("end_date"),
            "html_url": ((task.get("link") or {}).get("web") or {}).get("url"),
        },
    )


def normalize_issue(issue: Dict[str, Any]) -> NormalizedItem:
    status = issue.get("status")
    severity = issue.get("severity")
    return NormalizedItem(
        id=str(issue["id"]),
        created_date=issue.get("created_time") or DEFAULT_DATE,
        modified_date=issue.get("updated_time") or DEFAULT_DATE,
        data={
            "title": issue.get("title"),
            "description": [transform_html_content(issue.get("description"))],
            "bug_number": issue.get("bug_number"),
            "status": _type_of(status),
            "status_id": _id_of(status),
            "severity": _type_of(severity),
            "severity_id": _id_of(severity),
            "reporter_id": issue.get("reporter_id"),
            "assignee_id": issue.get("assignee_zpuid") or None,
        },
    )


def normalize_comment(comment: Dict[str, Any]) -> NormalizedItem:
    """Task comments carry ``id``/``content``, issue comments ``comment_id``/``comment``."""
    content = comment.get("content", comment.get("comment"))
    created = comment.get("created_time") or DEFAULT_DATE
    return NormalizedItem(
        id=str(comment["id"] if "id" in comment else comment["comment_id"]),
        created_date=created,
        modified_date=comment.get("updated_time") or created,
        data={
            "content": [transform_html_content(content)],
            "added_by": comment.get("added_by"),
            "parent_type": comment.get("parent_type"),
            "parent_id": comment.get("parent_id"),
        },
    )


class ZohoTransformer(TransformerInterface):
    def normalizers(self) -> Dict[str, Callable[[Any], NormalizedItem]]:
        return {
            "users": normalize_user,
            "tasks": normalize_task,
            "issues": normalize_issue,
            "comments": normalize_comment,
        }
