from abc import ABC, abstractmethod
from typing import Any, Callable, Dict

from sync_sdk.extraction.models import NormalizedItem


class TransformerInterface(ABC):
    """Maps raw source records of each record type to ``NormalizedItem``.

    Activities hand each repository the normalizer registered under its name;
    repositories without one persist raw records.
    """

    @abstractmethod
    def normalizers(self) -> Dict[str, Callable[[Any], NormalizedItem]]:
        """Normalizer per repository name."""
        raise NotImplementedError("normalizers method not implemented")
