"""Per-record-type extraction strategies and their dependency order."""

from abc import ABC
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from sync_sdk.common.error_codes import EXTRACTION_ERRORS, SyncError
from sync_sdk.extraction.state import ExtractionState, type_key


class RecordTypeStrategy(ABC):
    """How one record type is fetched, filtered and linked to its dependents.

    A primary type (``parent`` is None) implements ``fetch_page``. A dependent
    type names its parent and implements ``fetch_children_page``; it is fetched
    once for every parent identifier queued while its parent was extracted.

    Attributes:
        record_type (Enum): Member of the source's record type enumeration.
        parent (Optional[Enum]): Record type whose identifiers feed this type.
        sink_name (Optional[str]): Repository receiving the records. Defaults
            to the record type value.
    """

    record_type: Enum
    parent: Optional[Enum] = None
    sink_name: Optional[str] = None

    @property
    def name(self) -> str:
        return type_key(self.record_type)

    @property
    def repository(self) -> str:
        return self.sink_name or self.name

    @property
    def is_dependent(self) -> bool:
        return self.parent is not None

    async def fetch_page(self, page: int, state: ExtractionState) -> Any:
        raise NotImplementedError(f"{self.name} is not fetched page by page")

    async def fetch_children_page(
        self, parent_id: str, page: int, state: ExtractionState
    ) -> Any:
        raise NotImplementedError(f"{self.name} has no parent record type")

    def extract_items(self, response: Any) -> List[Any]:
        """Items held by one raw page; their count decides whether to continue."""
        return list(response or [])

    def prepare(self, items: List[Any], parent_id: Optional[str] = None) -> List[Any]:
        """Filter or annotate fetched items before they are sunk."""
        return items

    def extract_child_ids(self, items: List[Any]) -> List[str]:
        """Identifiers to queue for the record types depending on this one."""
        return []


class RecordTypeRegistry:
    """Strategies in a fixed order where every parent precedes its dependents.

    Raises:
        SyncError: If a parent is unknown, declared after its dependent, or a
            record type is registered twice.
    """

    def __init__(self, strategies: Sequence[RecordTypeStrategy]):
        self._strategies: Dict[str, RecordTypeStrategy] = {}
        for strategy in strategies:
            if strategy.name in self._strategies:
                raise SyncError(
                    f"Record type '{strategy.name}' registered twice",
                    EXTRACTION_ERRORS["RECORD_TYPE_ERROR"],
                )
            if strategy.parent is not None and type_key(strategy.parent) not in self._strategies:
                raise SyncError(
                    f"Record type '{strategy.name}' depends on '{type_key(strategy.parent)}' "
                    "which is not registered before it",
                    EXTRACTION_ERRORS["RECORD_TYPE_ERROR"],
                )
            self._strategies[strategy.name] = strategy

    def __iter__(self):
        return iter(self._strategies.values())

    def __len__(self) -> int:
        return len(self._strategies)

    def get(self, record_type: Any) -> RecordTypeStrategy:
        return self._strategies[type_key(record_type)]

    @property
    def names(self) -> List[str]:
        return list(self._strategies)

    @property
    def primary(self) -> List[RecordTypeStrategy]:
        return [s for s in self._strategies.values() if not s.is_dependent]

    @property
    def dependents(self) -> List[RecordTypeStrategy]:
        return [s for s in self._strategies.values() if s.is_dependent]

    def children_of(self, record_type: Any) -> List[RecordTypeStrategy]:
        key = type_key(record_type)
        return [
            s
            for s in self._strategies.values()
            if s.parent is not None and type_key(s.parent) == key
        ]
