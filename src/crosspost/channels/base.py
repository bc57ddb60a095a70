"""
Shared publish template for destination adapters.

Subclasses supply the destination, their media plan (pure validation and
selection, no I/O) and the protocol itself. The template owns the HTTP
client lifetime and turns every failure into a classified, failed result.
"""

from abc import abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import NamedTuple, TypeVar

import httpx
import structlog
from pydantic import BaseModel

from ..config import Settings
from ..domain.capabilities import CAPABILITIES, MB, DestinationCapabilities
from ..domain.errors import ErrorKind, PublishValidationError
from ..domain.media import MediaItem, MediaKind
from ..domain.models import DestinationCredential, DestinationResult, SkippedItem
from ..domain.ports import DestinationAdapter
from ..infrastructure.error_classifier import classify, with_retry_hint
from ..infrastructure.logging import Timer, sanitize_url
from ..infrastructure.retry import RetryPolicy

logger = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)
ClientFactory = Callable[[], httpx.AsyncClient]


class MediaSlot(NamedTuple):
    """A media item together with its position in the caller's list."""

    index: int
    item: MediaItem


@dataclass(frozen=True)
class PublishedPost:
    """Adapter-level success before it becomes a DestinationResult."""

    post_id: str
    media_count: int
    message: str


class BaseDestinationAdapter(DestinationAdapter):
    """Template for adapters; see module docstring."""

    # Destination-specific phrasing per error kind; the kind itself is kept
    FAILURE_MESSAGES: dict[ErrorKind, str] = {}
    REQUIRED_CREDENTIAL_FIELDS: tuple[str, ...] = ()

    def __init__(
        self,
        settings: Settings,
        retry_policy: RetryPolicy | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._settings = settings
        self._retry = retry_policy or settings.media_retry_policy()
        self._client_factory = client_factory or httpx.AsyncClient

    @property
    def capabilities(self) -> DestinationCapabilities:
        return CAPABILITIES[self.destination]

    @property
    def name(self) -> str:
        return self.destination.value

    async def publish(
        self,
        content: str | None,
        media: Sequence[MediaItem],
        credential: DestinationCredential,
    ) -> DestinationResult:
        skipped: list[SkippedItem] = []
        try:
            with Timer() as timer:
                self._check_credential(credential)
                slots = self._plan(content, [MediaSlot(i, m) for i, m in enumerate(media)], skipped)
                async with self._client_factory() as client:
                    post = await self._publish(client, content, slots, credential, skipped)
        except Exception as e:
            error = classify(e)
            message = with_retry_hint(
                self.FAILURE_MESSAGES.get(error.kind, error.message),
                error.kind,
                error.retry_after,
            )
            logger.error(
                "Publish failed",
                destination=self.name,
                error_kind=error.kind.value,
                error=error.message,
                status_code=error.status_code,
            )
            return DestinationResult.failed(
                destination=self.name,
                error_kind=error.kind,
                message=message,
                retry_after=error.retry_after,
                skipped=skipped,
            )

        logger.info(
            "Post published",
            destination=self.name,
            post_id=post.post_id,
            media_count=post.media_count,
            skipped=len(skipped),
            duration_ms=timer.duration_ms,
        )
        return DestinationResult.succeeded(
            destination=self.name,
            post_id=post.post_id,
            message=post.message,
            media_count=post.media_count,
            skipped=skipped,
        )

    def _check_credential(self, credential: DestinationCredential) -> None:
        if not credential or not credential.access_token:
            raise PublishValidationError(f"{self.name} access token is required")
        missing = [f for f in self.REQUIRED_CREDENTIAL_FIELDS if not getattr(credential, f)]
        if missing:
            raise PublishValidationError(
                f"{self.name} credential is missing: {', '.join(missing)}"
            )

    def _plan(
        self,
        content: str | None,
        slots: list[MediaSlot],
        skipped: list[SkippedItem],
    ) -> list[MediaSlot]:
        """
        Validate and select the media to publish, before any network call.

        Raises PublishValidationError to fail fast; appends to ``skipped``
        for items dropped by the destination's policy.
        """
        if not (content and content.strip()) and not slots:
            raise PublishValidationError("Content or media is required")
        for slot in slots:
            if slot.item.size is not None:
                self._check_size(slot.item, slot.item.size)
        return slots

    def _check_size(self, item: MediaItem, size: int) -> None:
        limit = self.capabilities.max_bytes_for(item.kind)
        if size > limit:
            raise PublishValidationError(
                f"{item.kind.value.capitalize()} {item.filename} exceeds "
                f"the {self.name} limit of {limit // MB} MB"
            )

    @abstractmethod
    async def _publish(
        self,
        client: httpx.AsyncClient,
        content: str | None,
        slots: list[MediaSlot],
        credential: DestinationCredential,
        skipped: list[SkippedItem],
    ) -> PublishedPost:
        """Run the destination protocol and return the created post."""
        ...

    @property
    def _metadata_timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self._settings.metadata_timeout)

    def _skip(self, skipped: list[SkippedItem], slot: MediaSlot, reason: str) -> None:
        logger.warning(
            "Media item skipped",
            destination=self.name,
            index=slot.index,
            kind=slot.item.kind.value,
            reason=reason,
        )
        skipped.append(SkippedItem(index=slot.index, kind=slot.item.kind, reason=reason))

    async def _read_bytes(self, client: httpx.AsyncClient, item: MediaItem) -> tuple[bytes, str]:
        """Return the item's payload, downloading remote items first."""
        if item.data is not None:
            return item.data, item.mime_type

        response = await client.get(
            item.url,
            timeout=httpx.Timeout(self._settings.remote_fetch_timeout),
            follow_redirects=True,
        )
        response.raise_for_status()
        if not response.content:
            raise PublishValidationError(f"Remote media is empty: {sanitize_url(item.url)}")
        self._check_size(item, len(response.content))
        default = "video/mp4" if item.kind is MediaKind.VIDEO else "image/jpeg"
        content_type = response.headers.get("content-type", default).split(";", 1)[0].strip()
        logger.debug(
            "Remote media fetched",
            destination=self.name,
            url=sanitize_url(item.url),
            size=len(response.content),
        )
        return response.content, content_type or default

    @staticmethod
    def _parse(model: type[ModelT], response: httpx.Response) -> ModelT:
        """Raise for HTTP errors, then parse the body into a strict model."""
        response.raise_for_status()
        return model.model_validate(response.json())


def plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def split_by_kind(slots: list[MediaSlot]) -> tuple[list[MediaSlot], list[MediaSlot]]:
    """Return (images, videos) preserving order."""
    images = [s for s in slots if s.item.kind is MediaKind.IMAGE]
    videos = [s for s in slots if s.item.kind is MediaKind.VIDEO]
    return images, videos
