import httpx
import structlog
from pydantic import BaseModel

from ..application.services.media_normalizer import MediaNormalizer
from ..config import Settings
from ..domain.errors import (
    ErrorKind,
    MediaProcessingError,
    PublishValidationError,
    UpstreamInvalidError,
)
from ..domain.media import MediaItem
from ..domain.models import Destination, DestinationCredential, SkippedItem
from ..infrastructure.error_classifier import classify
from ..infrastructure.retry import RetryPolicy
from .base import (
    BaseDestinationAdapter,
    ClientFactory,
    MediaSlot,
    PublishedPost,
    plural,
    split_by_kind,
)
from .instagram_container import (
    ContainerState,
    ContainerStatusPoller,
    MediaContainer,
    StatusReport,
)

logger = structlog.get_logger()


class _GraphObject(BaseModel):
    id: str


class _ContainerStatus(BaseModel):
    status_code: str | None = None
    status: str | None = None


class InstagramAdapter(BaseDestinationAdapter):
    """
    Instagram Graph API adapter: create container, poll, publish.

    Instagram fetches media itself, so every item is first resolved to a
    public URL through the MediaNormalizer. Media rules are strict and
    checked before any network call: media is required, kinds cannot be
    mixed, and a post holds 1 video or 1-10 images.
    """

    FAILURE_MESSAGES = {
        ErrorKind.PERMISSION: (
            "Permission denied. Ensure the Instagram account is a Business/Creator "
            "account with posting permissions."
        ),
        ErrorKind.RATE_LIMIT: "Instagram rate limit exceeded. Please try again later.",
    }
    REQUIRED_CREDENTIAL_FIELDS = ("account_id",)

    def __init__(
        self,
        settings: Settings,
        normalizer: MediaNormalizer,
        retry_policy: RetryPolicy | None = None,
        client_factory: ClientFactory | None = None,
        poller: ContainerStatusPoller | None = None,
    ) -> None:
        super().__init__(settings, retry_policy=retry_policy, client_factory=client_factory)
        self._normalizer = normalizer
        self._poller = poller or ContainerStatusPoller(
            interval=settings.instagram_poll_interval,
            max_attempts=settings.instagram_poll_max_attempts,
        )

    @property
    def destination(self) -> Destination:
        return Destination.INSTAGRAM

    def _plan(
        self,
        content: str | None,
        slots: list[MediaSlot],
        skipped: list[SkippedItem],
    ) -> list[MediaSlot]:
        if not slots:
            raise PublishValidationError(
                "Instagram requires at least one image or video. Text-only posts are not supported."
            )
        slots = super()._plan(content, slots, skipped)

        images, videos = split_by_kind(slots)
        if images and videos:
            raise PublishValidationError(
                "Instagram does not support mixing images and videos in the same post"
            )
        if len(videos) > self.capabilities.max_videos:
            raise PublishValidationError("Instagram supports only 1 video per post")
        if len(images) > self.capabilities.max_media:
            raise PublishValidationError(
                f"Instagram supports at most {self.capabilities.max_media} images in a carousel"
            )
        return slots

    async def _publish(
        self,
        client: httpx.AsyncClient,
        content: str | None,
        slots: list[MediaSlot],
        credential: DestinationCredential,
        skipped: list[SkippedItem],
    ) -> PublishedPost:
        normalized = await self._normalizer.normalize_detailed([s.item for s in slots])
        for entry in normalized.skipped:
            self._skip(skipped, slots[entry.index], entry.reason)
        if not normalized.items:
            raise PublishValidationError(
                "Instagram requires at least one publicly reachable image or video"
            )

        caption = content or ""
        if len(normalized.items) == 1:
            item = normalized.items[0]
            container = await self._create_container(client, credential, item, caption=caption)
            media_count = 1
            label = f"Instagram {item.kind.value} post"
        else:
            entries = [(slots[i], item) for i, item in zip(normalized.indexes, normalized.items)]
            container, media_count = await self._create_carousel(
                client, credential, entries, caption, skipped
            )
            label = f"Instagram carousel with {plural(media_count, 'image')}"

        outcome = await self._poller.wait(
            container,
            lambda: self._check_status(client, credential, container),
        )
        if outcome.state is ContainerState.ERRORED:
            raise MediaProcessingError(f"Media processing failed: {outcome.detail or 'unknown error'}")

        response = await client.post(
            self._url(credential, "media_publish"),
            data={"creation_id": container.container_id, "access_token": credential.access_token},
            timeout=httpx.Timeout(self._settings.container_timeout),
        )
        post = self._parse(_GraphObject, response)
        return PublishedPost(post.id, media_count, f"{label} published")

    async def _create_container(
        self,
        client: httpx.AsyncClient,
        credential: DestinationCredential,
        item: MediaItem,
        caption: str | None = None,
        carousel_item: bool = False,
    ) -> MediaContainer:
        fields: dict[str, str] = {"access_token": credential.access_token}
        if item.is_video:
            fields["video_url"] = item.url
            fields["media_type"] = "REELS"
        else:
            fields["image_url"] = item.url
            if not carousel_item:
                fields["media_type"] = "IMAGE"
        if carousel_item:
            fields["is_carousel_item"] = "true"
        if caption is not None:
            fields["caption"] = caption

        response = await client.post(
            self._url(credential, "media"),
            data=fields,
            timeout=httpx.Timeout(self._settings.container_timeout),
        )
        created = self._parse(_GraphObject, response)
        logger.debug("Instagram container created", container_id=created.id, kind=item.kind.value)
        return MediaContainer(container_id=created.id)

    async def _create_carousel(
        self,
        client: httpx.AsyncClient,
        credential: DestinationCredential,
        entries: list[tuple[MediaSlot, MediaItem]],
        caption: str,
        skipped: list[SkippedItem],
    ) -> tuple[MediaContainer, int]:
        children: list[str] = []
        for slot, item in entries:
            try:
                child = await self._retry.run(
                    lambda item=item: self._create_container(
                        client, credential, item, carousel_item=True
                    ),
                    description=f"instagram carousel item #{slot.index}",
                )
            except Exception as e:
                self._skip(skipped, slot, f"Container creation failed: {classify(e).message}")
                continue
            children.append(child.container_id)

        if not children:
            raise UpstreamInvalidError("Failed to create any Instagram media containers")

        response = await client.post(
            self._url(credential, "media"),
            data={
                "media_type": "CAROUSEL",
                "children": ",".join(children),
                "caption": caption,
                "access_token": credential.access_token,
            },
            timeout=httpx.Timeout(self._settings.container_timeout),
        )
        carousel = self._parse(_GraphObject, response)
        return MediaContainer(container_id=carousel.id), len(children)

    async def _check_status(
        self,
        client: httpx.AsyncClient,
        credential: DestinationCredential,
        container: MediaContainer,
    ) -> StatusReport:
        response = await client.get(
            f"{self._settings.graph_api_url}/{container.container_id}",
            params={"fields": "status_code,status", "access_token": credential.access_token},
            timeout=httpx.Timeout(self._settings.status_check_timeout),
        )
        status = self._parse(_ContainerStatus, response)
        return StatusReport(status_code=status.status_code, status=status.status)

    def _url(self, credential: DestinationCredential, edge: str) -> str:
        return f"{self._settings.graph_api_url}/{credential.account_id}/{edge}"
