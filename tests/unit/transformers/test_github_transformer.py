import pytest

from sync_sdk.handlers.github import GitHubRecordType
from sync_sdk.transformers.github import (
    DEFAULT_DATE,
    GitHubTransformer,
    transform_comment_body,
    transform_image_links,
)


@pytest.fixture
def transformer() -> GitHubTransformer:
    return GitHubTransformer()


class TestBodies:
    def test_image_links_become_plain_links(self):
        body = "see ![screenshot](https://example.com/a.png) and ![](b.png)"

        assert (
            transform_image_links(body)
            == "see [screenshot](https://example.com/a.png) and [](b.png)"
        )

    def test_empty_body(self):
        assert transform_image_links("") is None
        assert transform_comment_body(None) is None

    @pytest.mark.parametrize(
        "body",
        [
            "_Posted by Jane Doe via DevRev_: hello",
            "_Edited by Jane Doe via DevRev_: hello",
            "_Posted from DevRev_: hello",
        ],
    )
    def test_mirrored_comment_prefix_is_stripped(self, body: str):
        assert transform_comment_body(body) == "hello"

    def test_regular_comment_is_kept(self):
        assert transform_comment_body("Posted by me: hi") == "Posted by me: hi"


class TestGitHubTransformer:
    def test_issue(self, transformer: GitHubTransformer):
        issue = {
            "url": "https://api.github.com/repos/acme/widgets/issues/7",
            "number": 7,
            "title": "Broken",
            "state": "closed",
            "state_reason": "completed",
            "body": "![x](y.png)",
            "created_at": "2024-01-01T00:00:00Z",
            "updated_at": "2024-01-03T00:00:00Z",
            "user": {"login": "octocat"},
            "labels": [{"name": "bug"}],
            "assignees": [{"login": "hubot"}],
            "closed_by": {"login": "octocat"},
        }

        item = transformer.normalizers()["issues"](issue)

        assert item.id == issue["url"]
        assert item.created_date == "2024-01-01T00:00:00Z"
        assert item.modified_date == "2024-01-03T00:00:00Z"
        assert item.data["body"] == ["[x](y.png)"]
        assert item.data["created_by"] == "octocat"
        assert item.data["labels"] == ["bug"]
        assert item.data["assignees"] == ["hubot"]
        assert item.data["closed_by"] == "octocat"
        assert item.data["closing_state_reason"] == "completed"

    def test_issue_without_body_or_closer(self, transformer: GitHubTransformer):
        item = transformer.normalizers()["issues"](
            {"url": "u", "body": None, "closed_by": None}
        )

        assert item.data["body"] is None
        assert item.data["closed_by"] is None
        assert item.created_date == DEFAULT_DATE

    def test_comment(self, transformer: GitHubTransformer):
        item = transformer.normalizers()["comments"](
            {
                "id": 42,
                "body": "_Posted from DevRev_: done",
                "user": {"login": "octocat"},
                "issue_url": "https://api.github.com/repos/acme/widgets/issues/7",
                "created_at": "2024-01-01T00:00:00Z",
                "updated_at": "2024-01-01T00:00:00Z",
            },
        )

        assert item.id == "42"
        assert item.data["body"] == ["done"]
        assert item.data["user_id"] == "octocat"

    def test_label_and_assignee(self, transformer: GitHubTransformer):
        label = transformer.normalizers()["labels"](
            {"id": 3, "name": "bug", "color": "d73a4a"}
        )
        assignee = transformer.normalizers()["assignees"]({"login": "hubot"})

        assert label.id == "3"
        assert label.data["color"] == "#d73a4a"
        assert label.modified_date == DEFAULT_DATE
        assert assignee.id == "hubot"
        assert assignee.data["user_id"] == "hubot"

    def test_every_record_type_has_a_normalizer(self, transformer: GitHubTransformer):
        assert set(transformer.normalizers()) == {t.value for t in GitHubRecordType}
