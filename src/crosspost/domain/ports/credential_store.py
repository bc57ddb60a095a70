"""
Outbound port for credential lookup.

Credential acquisition and persistence are owned elsewhere; the core only
reads already-valid records and reports successful use.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence

from ..models import DestinationCredential


class CredentialStore(ABC):
    """
    Outbound port for reading destination credentials.

    This abstraction keeps storage concerns out of the publishing core.
    """

    @abstractmethod
    async def get_credentials(
        self,
        user_id: str,
        destinations: Sequence[str],
    ) -> Mapping[str, DestinationCredential]:
        """
        Load the active credentials a user has for the given destinations.

        Args:
            user_id: Owner of the connected accounts
            destinations: Destination identifiers requested

        Returns:
            Mapping of destination identifier to credential; destinations
            without a connected account are simply absent
        """
        ...

    @abstractmethod
    async def mark_used(self, user_id: str, destination: str) -> None:
        """
        Record that a credential was used for a successful publish.

        Args:
            user_id: Owner of the connected account
            destination: Destination identifier
        """
        ...
