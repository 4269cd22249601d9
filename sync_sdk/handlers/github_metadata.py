"""External domain metadata published for the GitHub source."""

from typing import Any, Dict

from sync_sdk.handlers.metadata import enum, field, reference

EXTERNAL_DOMAIN_METADATA: Dict[str, Any] = {
    "schema_version": "v0.2.0",
    "record_types": {
        "issues": {
            "name": "Issues",
            "is_loadable": True,
            "fields": {
                "number": field("int", "GitHub Issue Number"),
                "title": field("text", "Title", is_required=True),
                "body": field("rich_text", "Body", is_required=True),
                "state": enum(
                    "State", {"open": "Open", "closed": "Closed"}, is_required=True
                ),
                "closing_state_reason": enum(
                    "State Reason for Closing",
                    {"completed": "Completed", "not_planned": "Not Planned"},
                ),
                "created_by": reference(
                    "assignees", "Creator of the issue", is_required=True
                ),
                "closed_by": reference("assignees", "Closed By"),
                "assignees": reference(
                    "assignees", "Assignees", is_required=True, collection={}
                ),
                "labels": reference("labels", "Labels", is_required=True, collection={}),
                "locked": field("bool", "Locked"),
                "closed_at": field("timestamp", "Closed At"),
                "html_url": field("text", "Github Issue URL"),
            },
        },
        "comments": {
            "name": "Comments",
            "is_loadable": True,
            "fields": {
                "body": field("rich_text", "Body"),
                "user_id": reference("assignees", "Commenter"),
                "issue_url": reference("issues", "Issue URL of the Comment"),
                "html_url": field("text", "HTML URL"),
                "author_association": field("text", "Author Association"),
            },
        },
        "labels": {
            "name": "Labels",
            "fields": {
                "name": field("text", "Name", is_required=True),
                "description": field("rich_text", "Description"),
                "color": field("text", "Color"),
                "default": field("bool", "Is Default"),
                "url": field("text", "URL"),
            },
        },
        "assignees": {
            "name": "Assignees",
            "fields": {
                "user_id": field("text", "Username", is_required=True),
                "type": field("text", "User Type"),
                "html_url": field("text", "Profile URL"),
                "site_admin": field("bool", "Is Admin"),
            },
        },
    },
}
