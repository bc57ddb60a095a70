"""
Application service for publishing on behalf of a user.

This service loads the user's connected accounts and hands the post to the
publisher. It depends on abstractions (ports), not concrete implementations.
"""

from collections.abc import Sequence

import structlog

from ...domain.media import MediaItem
from ...domain.models import BatchReport, PublishRequest
from ...domain.ports import CredentialStore, SocialMediaPublisher

logger = structlog.get_logger()


class PublishingService:
    """
    Application service that handles user-initiated publishing.

    This service:
    - Looks up credentials through the CredentialStore port
    - Delegates the fan-out to the SocialMediaPublisher port
    - Records credential use for every destination that succeeded
    """

    def __init__(self, publisher: SocialMediaPublisher, credential_store: CredentialStore) -> None:
        """
        Initialize with port implementations.

        Args:
            publisher: Implementation of SocialMediaPublisher port
            credential_store: Implementation of CredentialStore port
        """
        self._publisher = publisher
        self._credential_store = credential_store

    async def publish_for_user(
        self,
        user_id: str,
        content: str | None,
        media: Sequence[MediaItem],
        destinations: Sequence[str],
    ) -> BatchReport:
        """
        Publish a post to the user's connected destinations.

        Args:
            user_id: Owner of the connected accounts
            content: Post text
            media: Ordered media items
            destinations: Destination identifiers (twitter, instagram, etc.)

        Returns:
            BatchReport with per-destination results

        Raises:
            PublishValidationError: If the request itself is malformed
        """
        request = PublishRequest(content=content, media=tuple(media), destinations=tuple(destinations))
        credentials = await self._credential_store.get_credentials(user_id, request.destinations)
        request = PublishRequest(
            content=request.content,
            media=request.media,
            destinations=request.destinations,
            credentials=credentials,
        )

        logger.info(
            "Publishing for user",
            user_id=user_id,
            destinations=list(request.destinations),
            connected=sorted(request.credentials),
        )

        report = await self._publisher.publish_many(request)

        for result in report.results:
            if not result.success:
                continue
            try:
                await self._credential_store.mark_used(user_id, result.destination)
            except Exception as e:
                logger.warning(
                    "Failed to record credential use",
                    user_id=user_id,
                    destination=result.destination,
                    error=str(e),
                )

        logger.info(
            "Publishing completed",
            user_id=user_id,
            total=len(report.results),
            successful=report.success_count,
        )
        return report
