from typing import Any, Dict, List, Optional

from sync_sdk.repositories import Normalizer, Repository


class InMemoryRepository(Repository):
    """Keeps pushed batches in memory; used for local runs and tests."""

    def __init__(self, item_type: str, normalize: Optional[Normalizer] = None):
        super().__init__(item_type, normalize)
        self.batches: List[List[Dict[str, Any]]] = []

    async def _write(self, records: List[Dict[str, Any]]) -> None:
        self.batches.append(list(records))

    @property
    def records(self) -> List[Dict[str, Any]]:
        return [record for batch in self.batches for record in batch]
