"""Normalization of GitHub records into repository items."""

import re
from typing import Any, Callable, Dict, Optional

from sync_sdk.extraction.models import NormalizedItem
from sync_sdk.transformers import TransformerInterface

# GitHub does not report creation dates for users and labels
DEFAULT_DATE = "1970-01-01T00:00:00Z"

IMAGE_LINK_PATTERN = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")
MIRRORED_COMMENT_PREFIX = re.compile(r"^_(Posted|Edited)( by .+? via| from) DevRev_:\s*")


def transform_image_links(body: Optional[str]) -> Optional[str]:
    """Turn embedded images into plain links: ``![alt](url)`` -> ``[alt](url)``."""
    if not body:
        return None
    return IMAGE_LINK_PATTERN.sub(r"[\1](\2)", body)


def transform_comment_body(body: Optional[str]) -> Optional[str]:
    """Strip the prefix added to comments mirrored from the target system."""
    if not body:
        return None
    return transform_image_links(MIRRORED_COMMENT_PREFIX.sub("", body, count=1))


def normalize_assignee(user: Dict[str, Any]) -> NormalizedItem:
    return NormalizedItem(
        id=user["login"],
        created_date=DEFAULT_DATE,
        modified_date=DEFAULT_DATE,
        data={
            "user_id": user["login"],
            "html_url": user.get("html_url"),
            "type": user.get("type"),
            "site_admin": user.get("site_admin"),
        },
    )


def normalize_label(label: Dict[str, Any]) -> NormalizedItem:
    return NormalizedItem(
        id=str(label["id"]),
        created_date=DEFAULT_DATE,
        modified_date=DEFAULT_DATE,
        data={
            "name": label.get("name"),
            "color": f"#{label.get('color', '')}",
            "description": [label.get("description") or None],
            "default": label.get("default"),
            "url": label.get("url"),
        },
    )


def normalize_issue(issue: Dict[str, Any]) -> NormalizedItem:
    body = transform_image_links(issue.get("body"))
    closed_by = issue.get("closed_by") or {}
    return NormalizedItem(
        id=issue["url"],
        created_date=issue.get("created_at") or DEFAULT_DATE,
        modified_date=issue.get("updated_at") or DEFAULT_DATE,
        data={
            "number": issue.get("number"),
            "title": issue.get("title"),
            "state": issue.get("state"),
            "body": [body] if body else None,
            "html_url": issue.get("html_url"),
            "locked": issue.get("locked"),
            "created_by": (issue.get("user") or {}).get("login"),
            "labels": [label["name"] for label in issue.get("labels", [])],
            "assignees": [user["login"] for user in issue.get("assignees", [])],
            "closed_at": issue.get("closed_at"),
            "closed_by": closed_by.get("login"),
            "closing_state_reason": issue.get("state_reason"),
        },
    )


def normalize_comment(comment: Dict[str, Any]) -> NormalizedItem:
    return NormalizedItem(
        id=str(comment["id"]),
        created_date=comment.get("created_at") or DEFAULT_DATE,
        modified_date=comment.get("updated_at") or DEFAULT_DATE,
        data={
            "body": [transform_comment_body(comment.get("body"))],
            "html_url": comment.get("html_url"),
            "issue_url": comment.get("issue_url"),
            "user_id": (comment.get("user") or {}).get("login"),
            "author_association": comment.get("author_association"),
        },
    )


class GitHubTransformer(TransformerInterface):
    def normalizers(self) -> Dict[str, Callable[[Any], NormalizedItem]]:
        return {
            "labels": normalize_label,
            "assignees": normalize_assignee,
            "issues": normalize_issue,
            "comments": normalize_comment,
        }
