"""External domain metadata published for the Zoho Projects source.

Field keys match the ``data`` of the items produced by
``sync_sdk.transformers.zoho``.
"""

from typing import Any, Dict

from sync_sdk.handlers.metadata import enum, field, reference

EXTERNAL_DOMAIN_METADATA: Dict[str, Any] = {
    "schema_version": "v0.2.0",
    "record_types": {
        "issues": {
            "name": "Issues",
            "is_loadable": True,
            "fields": {
                "title": field("text", "Title", is_required=True),
                "description": field("rich_text", "Description"),
                "bug_number": field("text", "Bug Number"),
                "status": enum(
                    "Status", {"open": "Open", "closed": "Closed"}, is_required=True
                ),
                "status_id": field("text", "Status ID"),
                "severity": field("text", "Severity"),
                "severity_id": field("text", "Severity ID"),
                "assignee_id": reference("users", "Assignee"),
                "reporter_id": reference("users", "Reporter", is_required=True),
            },
        },
        "tasks": {
            "name": "Tasks",
            "is_loadable": True,
            "fields": {
                "name": field("text", "Task Name", is_required=True),
                "description": field("rich_text", "Description"),
                "status": field("text", "Status", is_required=True),
                "status_id": field("text", "Status ID"),
                "status_name": field("text", "Status Name"),
                "priority": field("text", "Priority"),
                "owners": reference("users", "Owners", collection={}),
                "created_by": reference("users", "Created By"),
                "start_date": field("timestamp", "Start Date"),
                "end_date": field("timestamp", "End Date"),
                "completed": field("bool", "Is Completed"),
                "percent_complete": field("text", "Percent Complete"),
                "html_url": field("text", "HTML URL"),
            },
        },
        "users": {
            "name": "Users",
            "is_loadable": True,
            "fields": {
                "name": field("text", "Name", is_required=True),
                "email": field("text", "Email", is_required=True),
                "role": field("text", "Role"),
                "profile_type": field("text", "Profile Type"),
                "active": field("bool", "Is Active"),
            },
        },
        "comments": {
            "name": "Comments",
            "is_loadable": True,
            "fields": {
                "content": field("rich_text", "Content", is_required=True),
                "added_by": reference("users", "Added By", is_required=True),
                "parent_type": enum(
                    "Parent Type", {"issue": "Issue", "task": "Task"}, is_required=True
                ),
                "parent_id": field("text", "Parent ID", is_required=True),
            },
        },
    },
}
