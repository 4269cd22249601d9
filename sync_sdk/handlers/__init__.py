from abc import ABC, abstractmethod
from typing import Any, Dict, Sequence

from sync_sdk.extraction.fetcher import PaginatedFetcher
from sync_sdk.extraction.models import FetchResult, SyncScope
from sync_sdk.extraction.strategies import RecordTypeRegistry
from sync_sdk.transformers import TransformerInterface


class HandlerInterface(ABC):
    """
    Abstract base class for source handlers

    A handler binds one external source to the extraction engine: it owns the
    source client, the record type strategies and the record normalizers.

    Attributes:
        required_scope (Sequence[str]): Scope fields a data extraction needs.
        transformer (TransformerInterface): Normalizers per repository.
    """

    required_scope: Sequence[str] = ()
    transformer: TransformerInterface

    @abstractmethod
    async def load(self, credentials: Dict[str, Any]) -> None:
        """
        Method to load the handler with the source credentials
        """
        pass

    @abstractmethod
    async def discover_sync_units(
        self, scope: SyncScope, fetcher: PaginatedFetcher
    ) -> FetchResult:
        """
        List the sync units of the source through ``fetcher``.
        On success the result items are ``ExternalSyncUnit`` instances.
        """
        raise NotImplementedError("discover_sync_units method not implemented")

    @abstractmethod
    async def fetch_metadata(self) -> Dict[str, Any]:
        """
        Abstract method to fetch the external domain metadata
        To be implemented by the subclass
        """
        raise NotImplementedError("fetch_metadata method not implemented")

    @abstractmethod
    def record_types(self, scope: SyncScope) -> RecordTypeRegistry:
        """
        Strategies of every record type for ``scope``, in extraction order
        """
        raise NotImplementedError("record_types method not implemented")
