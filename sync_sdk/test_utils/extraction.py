"""Deterministic building blocks for exercising the extraction engine in tests."""

from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sync_sdk.extraction.state import ExtractionState
from sync_sdk.extraction.strategies import RecordTypeStrategy


class FakeRecordType(str, Enum):
    USERS = "users"
    TASKS = "tasks"
    COMMENTS = "comments"


class FakeClock:
    """Manually advanced clock; ``sleep`` advances it instead of waiting."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def ms(self) -> float:
        return self.now * 1000

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)


def page_of(count: int, start: int = 1) -> List[Dict[str, Any]]:
    return [{"id": i} for i in range(start, start + count)]


class ScriptedStrategy(RecordTypeStrategy):
    """Serves pre-scripted pages.

    A script is a list of page entries; entry ``n - 1`` answers page ``n``.
    An entry is either the list of items of that page or an exception to
    raise. Pages beyond the script are empty.

    Args:
        record_type (Enum): Record type served.
        pages (Sequence[Any]): Script of a primary type.
        parent (Optional[Enum]): Parent type of a dependent type.
        children (Optional[Dict[str, Sequence[Any]]]): Script per parent id.
        clock (Optional[FakeClock]): Advanced by ``seconds_per_request`` on
            every request.
        journal (Optional[List]): Shared log of ``(type, parent_id, page)``
            requests across strategies.
    """

    def __init__(
        self,
        record_type: Enum,
        pages: Sequence[Any] = (),
        parent: Optional[Enum] = None,
        children: Optional[Dict[str, Sequence[Any]]] = None,
        clock: Optional[FakeClock] = None,
        seconds_per_request: float = 0,
        journal: Optional[List[Tuple[str, Optional[str], int]]] = None,
    ):
        self.record_type = record_type
        self.parent = parent
        self.pages = list(pages)
        self.children = dict(children or {})
        self.clock = clock
        self.seconds_per_request = seconds_per_request
        self.calls: List[Tuple[Optional[str], int]] = []
        self.journal = journal if journal is not None else []

    def _serve(self, script: Sequence[Any], page: int) -> Any:
        if self.clock is not None:
            self.clock.advance(self.seconds_per_request)
        if page > len(script):
            return []
        entry = script[page - 1]
        if isinstance(entry, Exception):
            raise entry
        return entry

    async def fetch_page(self, page: int, state: ExtractionState) -> Any:
        self.calls.append((None, page))
        self.journal.append((self.name, None, page))
        return self._serve(self.pages, page)

    async def fetch_children_page(
        self, parent_id: str, page: int, state: ExtractionState
    ) -> Any:
        self.calls.append((parent_id, page))
        self.journal.append((self.name, parent_id, page))
        return self._serve(self.children.get(parent_id, []), page)

    def extract_child_ids(self, items: List[Any]) -> List[str]:
        return [str(item["id"]) for item in items]
