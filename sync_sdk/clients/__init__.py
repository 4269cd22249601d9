from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class ClientInterface(ABC):
    """A connection the SDK opens to an external system.

    Source clients are loaded with the credentials of the sync unit being
    extracted. The workflow client takes its connection settings from
    ``sync_sdk.constants`` and is loaded without credentials.
    """

    @abstractmethod
    async def load(self, credentials: Optional[Dict[str, Any]] = None) -> None:
        """Prepare the client for requests.

        Raises:
            ValueError: If ``credentials`` lack what the client needs.
        """
