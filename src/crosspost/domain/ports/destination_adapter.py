"""
Outbound port for publishing to one destination.

This is the interface the dispatch coordinator uses to publish a post.
Each destination's protocol lives in an adapter implementing this interface.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from ..media import MediaItem
from ..models import Destination, DestinationCredential, DestinationResult


class DestinationAdapter(ABC):
    """
    Outbound port for publishing a post to a single destination.

    Implementations must never raise past their own boundary: every failure
    is classified and returned as a failed DestinationResult.
    """

    @property
    @abstractmethod
    def destination(self) -> Destination:
        """Return the destination this adapter handles."""
        ...

    @abstractmethod
    async def publish(
        self,
        content: str | None,
        media: Sequence[MediaItem],
        credential: DestinationCredential,
    ) -> DestinationResult:
        """
        Publish a post to this destination.

        Args:
            content: Post text (may be empty when media is present)
            media: Ordered media items to attach
            credential: Already-valid credential for this destination

        Returns:
            DestinationResult with the post ID or a classified error
        """
        ...
