import os
from typing import Any

import orjson
import pytest

from sync_sdk.common.error_codes import REPOSITORY_ERRORS, SinkError
from sync_sdk.extraction.models import NormalizedItem
from sync_sdk.repositories import RepositoryRegistry
from sync_sdk.repositories.json import JsonRepository, build_output_path
from sync_sdk.repositories.memory import InMemoryRepository


def normalize_user(record: Any) -> NormalizedItem:
    return NormalizedItem(
        id=str(record["id"]),
        created_date="2024-01-01T00:00:00Z",
        modified_date="2024-01-02T00:00:00Z",
        data={"login": record["login"]},
    )


def read_batch(path: str) -> list:
    with open(path, "rb") as f:
        return [orjson.loads(line) for line in f]


class TestInMemoryRepository:
    async def test_push_normalizes_and_counts(self):
        repo = InMemoryRepository("users", normalize_user)

        stats = await repo.push([{"id": 1, "login": "octocat"}])
        await repo.push([{"id": 2, "login": "hubot"}])

        assert stats.total_record_count == 1
        assert repo.statistics.total_record_count == 2
        assert repo.statistics.batch_count == 2
        assert repo.records[0] == {
            "id": "1",
            "created_date": "2024-01-01T00:00:00Z",
            "modified_date": "2024-01-02T00:00:00Z",
            "data": {"login": "octocat"},
        }

    async def test_normalizer_failure_pushes_nothing(self):
        repo = InMemoryRepository("users", normalize_user)

        with pytest.raises(SinkError):
            await repo.push([{"id": 1, "login": "octocat"}, {"id": 2}])

        assert repo.batches == []
        assert repo.statistics.total_record_count == 0


class TestJsonRepository:
    async def test_each_push_is_one_batch_file(self, local_storage):
        output_path = build_output_path("1296269", "users")
        repo = JsonRepository("users", output_path)

        await repo.push([{"id": 1}, {"id": 2}])
        await repo.push([{"id": 3}])

        assert output_path.startswith(str(local_storage))
        assert sorted(os.listdir(output_path)) == ["00001.jsonl", "00002.jsonl"]
        assert read_batch(os.path.join(output_path, "00001.jsonl")) == [
            {"id": 1},
            {"id": 2},
        ]

    async def test_new_repository_appends_after_existing_batches(self, local_storage):
        output_path = build_output_path("1296269", "comments")
        first = JsonRepository("comments", output_path)
        await first.push([{"id": "c1"}])

        resumed = JsonRepository("comments", output_path)
        await resumed.push([{"id": "c2"}])

        assert sorted(os.listdir(output_path)) == ["00001.jsonl", "00002.jsonl"]
        assert read_batch(os.path.join(output_path, "00001.jsonl")) == [{"id": "c1"}]
        assert read_batch(os.path.join(output_path, "00002.jsonl")) == [{"id": "c2"}]

    async def test_batch_numbering_ignores_other_files(self, local_storage):
        output_path = build_output_path("1296269", "comments")
        os.makedirs(output_path)
        for name in ("00007.jsonl", "00009.jsonl.tmp", "notes.txt"):
            with open(os.path.join(output_path, name), "wb") as f:
                f.write(b"")

        await JsonRepository("comments", output_path).push([{"id": "c1"}])

        assert os.path.exists(os.path.join(output_path, "00008.jsonl"))

    async def test_failed_write_leaves_no_batch(self, local_storage):
        output_path = build_output_path("1296269", "users")
        repo = JsonRepository("users", output_path)

        with pytest.raises(SinkError):
            await repo.push([{"id": 1, "payload": object()}])

        assert os.listdir(output_path) == []
        assert repo.statistics.batch_count == 0


class TestRepositoryRegistry:
    async def test_push_routes_by_item_type(self):
        users = InMemoryRepository("users")
        registry = RepositoryRegistry([users, InMemoryRepository("tasks")])

        await registry.push("users", [{"id": 1}])

        assert users.records == [{"id": 1}]
        assert registry.statistics["tasks"].total_record_count == 0

    async def test_unknown_repository(self):
        registry = RepositoryRegistry()

        with pytest.raises(SinkError) as exc_info:
            await registry.push("users", [{"id": 1}])

        assert exc_info.value.error_code is REPOSITORY_ERRORS["REPOSITORY_NOT_FOUND"]
