from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel


class SyncMode(str, Enum):
    FULL = "full"
    INCREMENTAL = "incremental"


class SyncScope(BaseModel):
    """Identifiers narrowing the external source to one sync unit."""

    org_id: Optional[str] = None
    org_name: Optional[str] = None
    unit_id: Optional[str] = None
    unit_name: Optional[str] = None
    portal_id: Optional[str] = None
    project_id: Optional[str] = None

    def missing(self, required: List[str]) -> List[str]:
        return [name for name in required if not getattr(self, name, None)]


class ExternalSyncUnit(BaseModel):
    """A unit of the source that can be synchronized on its own (e.g. a repository)."""

    id: str
    name: str
    description: str
    item_count: Optional[int] = None
    item_type: Optional[str] = None


class NormalizedItem(BaseModel):
    """A record in the shape repositories persist."""

    id: str
    created_date: str
    modified_date: str
    data: Any


@dataclass
class FetchOk:
    """Every page was fetched; ``pages`` is the last page number requested."""

    items: List[Any] = field(default_factory=list)
    pages: int = 1


@dataclass
class RateLimited:
    """The fetch stopped on a rate limit; accumulated items were discarded."""

    delay_ms: int


@dataclass
class FetchFailed:
    error: Exception


FetchResult = Union[FetchOk, RateLimited, FetchFailed]
