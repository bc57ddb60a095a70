"""
Inbound port for cross-destination publishing.

This is the interface the excluded transport layer calls.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from ..capabilities import DestinationCapabilities
from ..media import MediaItem
from ..models import (
    BatchReport,
    Destination,
    DestinationCredential,
    DestinationResult,
    PublishRequest,
)


class SocialMediaPublisher(ABC):
    """Port for publishing one post to one or many destinations."""

    @abstractmethod
    async def publish_many(self, request: PublishRequest) -> BatchReport:
        """
        Publish content to every requested destination concurrently.

        Args:
            request: PublishRequest with content, media and credentials

        Returns:
            BatchReport with one result per destination, in request order
        """
        ...

    @abstractmethod
    async def publish_one(
        self,
        destination: str,
        content: str | None,
        media: Sequence[MediaItem],
        credential: DestinationCredential,
    ) -> DestinationResult:
        """Publish content to a single destination."""
        ...

    @abstractmethod
    def describe_capabilities(self) -> dict[Destination, DestinationCapabilities]:
        """Return the static per-destination limits table."""
        ...
