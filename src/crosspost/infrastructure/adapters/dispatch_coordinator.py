"""
Dispatch coordinator.

Implements SocialMediaPublisher by fanning one post out to every requested
destination adapter concurrently and joining the results in request order.
"""

import asyncio
import uuid
from collections.abc import Sequence

import structlog

from ...domain.capabilities import DestinationCapabilities, describe_capabilities
from ...domain.errors import ErrorKind, PublishValidationError
from ...domain.media import MediaItem
from ...domain.models import (
    BatchReport,
    Destination,
    DestinationCredential,
    DestinationResult,
    PublishRequest,
    normalize_destination,
)
from ...domain.ports import SocialMediaPublisher
from ..error_classifier import classify
from ..logging import Timer, batch_scope
from .adapter_registry import AdapterRegistry

logger = structlog.get_logger()


class DispatchCoordinator(SocialMediaPublisher):
    """
    Concurrent implementation of SocialMediaPublisher.

    One task per unique destination. A destination's failure never affects
    another's result; only a malformed request fails the whole batch.
    """

    def __init__(self, registry: AdapterRegistry | None = None) -> None:
        self._registry = registry or AdapterRegistry()

    async def publish_many(self, request: PublishRequest) -> BatchReport:
        """
        Publish content to all requested destinations.

        Args:
            request: PublishRequest with content, media and credentials

        Returns:
            BatchReport with exactly one result per destination

        Raises:
            PublishValidationError: If the request names no destination
        """
        if not request.destinations:
            raise PublishValidationError("At least one destination is required")

        with batch_scope(f"batch-{uuid.uuid4().hex[:12]}") as batch_id:
            return await self._dispatch(request, batch_id)

    async def _dispatch(self, request: PublishRequest, batch_id: str) -> BatchReport:
        logger.info(
            "Dispatching post",
            batch_id=batch_id,
            destinations=list(request.destinations),
            media_count=len(request.media),
            has_content=request.has_content,
        )

        with Timer() as timer:
            outcomes = await asyncio.gather(
                *(
                    self.publish_one(
                        destination,
                        request.content,
                        request.media,
                        request.credential_for(destination),
                    )
                    for destination in request.destinations
                ),
                return_exceptions=True,
            )

        results = []
        for destination, outcome in zip(request.destinations, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                results.append(self._failure(destination, outcome))
            else:
                results.append(outcome)

        report = BatchReport(results=tuple(results))
        logger.info(
            "Dispatch completed",
            batch_id=batch_id,
            total=len(results),
            successful=report.success_count,
            failed=report.failure_count,
            duration_ms=timer.duration_ms,
        )
        return report

    async def publish_one(
        self,
        destination: str,
        content: str | None,
        media: Sequence[MediaItem],
        credential: DestinationCredential | None,
    ) -> DestinationResult:
        """Publish content to a single destination."""
        name = normalize_destination(destination)
        try:
            adapter = self._registry.get(name)
        except PublishValidationError:
            logger.warning("Unsupported destination", destination=name)
            return DestinationResult.failed(
                destination=name,
                error_kind=ErrorKind.VALIDATION,
                message=f"Unsupported destination: {name}",
            )

        if credential is None:
            logger.warning("No credentials supplied", destination=name)
            return DestinationResult.failed(
                destination=name,
                error_kind=ErrorKind.VALIDATION,
                message=f"No credentials supplied for {name}",
            )

        return await adapter.publish(content, media, credential)

    def describe_capabilities(self) -> dict[Destination, DestinationCapabilities]:
        return describe_capabilities()

    @staticmethod
    def _failure(destination: str, error: Exception) -> DestinationResult:
        classified = classify(error)
        logger.error(
            "Destination publish failed",
            destination=destination,
            error_kind=classified.kind.value,
            error=classified.message,
        )
        return DestinationResult.failed(
            destination=destination,
            error_kind=classified.kind,
            message=classified.display_message,
            retry_after=classified.retry_after,
        )
