"""Typed sinks receiving extracted records, one repository per record type."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel

from sync_sdk.common.error_codes import REPOSITORY_ERRORS, SinkError
from sync_sdk.extraction.models import NormalizedItem
from sync_sdk.observability.logger_adaptor import get_logger

logger = get_logger(__name__)

Normalizer = Callable[[Any], NormalizedItem]


class RepositoryStatistics(BaseModel):
    """Counters returned by a repository after a successful push."""

    total_record_count: int = 0
    batch_count: int = 0
    typename: Optional[str] = None


class Repository(ABC):
    """A sink for one record type.

    ``push`` is atomic per call: either every item of the call is persisted
    or none is, and a failure raises ``SinkError``.

    Args:
        item_type (str): Name the orchestrator pushes under.
        normalize (Optional[Normalizer]): Maps a raw source record to the
            persisted shape. Raw records are kept when omitted.
    """

    def __init__(self, item_type: str, normalize: Optional[Normalizer] = None):
        self.item_type = item_type
        self.normalize = normalize
        self.statistics = RepositoryStatistics(typename=item_type)

    def _normalize_all(self, items: Sequence[Any]) -> List[Dict[str, Any]]:
        try:
            if self.normalize is None:
                return [dict(item) for item in items]
            return [self.normalize(item).model_dump() for item in items]
        except Exception as e:
            raise SinkError(
                f"Failed to normalize {self.item_type} records: {e}"
            ) from e

    async def push(self, items: Sequence[Any]) -> RepositoryStatistics:
        records = self._normalize_all(items)
        await self._write(records)
        self.statistics.total_record_count += len(records)
        self.statistics.batch_count += 1
        logger.debug(f"Pushed {len(records)} records to {self.item_type}")
        return self.statistics.model_copy()

    @abstractmethod
    async def _write(self, records: List[Dict[str, Any]]) -> None:
        """Persist ``records`` all at once or raise ``SinkError``."""


class RepositoryRegistry:
    """Repositories of one invocation, looked up by item type."""

    def __init__(self, repos: Optional[Sequence[Repository]] = None):
        self._repos: Dict[str, Repository] = {}
        if repos:
            self.initialize_repos(repos)

    def initialize_repos(self, repos: Sequence[Repository]) -> None:
        for repo in repos:
            self._repos[repo.item_type] = repo

    def get_repo(self, item_type: str) -> Repository:
        try:
            return self._repos[item_type]
        except KeyError:
            raise SinkError(
                f"Repository for {item_type} not found",
                REPOSITORY_ERRORS["REPOSITORY_NOT_FOUND"],
            ) from None

    async def push(self, item_type: str, items: Sequence[Any]) -> RepositoryStatistics:
        return await self.get_repo(item_type).push(items)

    @property
    def statistics(self) -> Dict[str, RepositoryStatistics]:
        return {name: repo.statistics for name, repo in self._repos.items()}
