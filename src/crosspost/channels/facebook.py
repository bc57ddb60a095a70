import httpx
import structlog
from pydantic import BaseModel

from ..domain.errors import ErrorKind, PublishValidationError, UpstreamInvalidError
from ..domain.models import Destination, DestinationCredential, SkippedItem
from ..infrastructure.error_classifier import classify
from .base import BaseDestinationAdapter, MediaSlot, PublishedPost, plural, split_by_kind

logger = structlog.get_logger()


class _GraphObject(BaseModel):
    id: str
    post_id: str | None = None


class FacebookAdapter(BaseDestinationAdapter):
    """
    Facebook Graph API adapter for Page posts.

    Branches on media shape: text-only feed post, single photo, single
    video, or an album built from unpublished photos. Media rules are
    strict: more than one video, a video mixed with images, or too many
    images fail validation instead of being trimmed.
    """

    FAILURE_MESSAGES = {
        ErrorKind.AUTH: "Facebook authentication failed. Please reconnect your page.",
        ErrorKind.PERMISSION: (
            "Permission denied. Make sure the page granted posting permissions to this app."
        ),
        ErrorKind.RATE_LIMIT: "Facebook rate limit exceeded. Please try again later.",
    }
    REQUIRED_CREDENTIAL_FIELDS = ("page_id",)

    @property
    def destination(self) -> Destination:
        return Destination.FACEBOOK

    def _plan(
        self,
        content: str | None,
        slots: list[MediaSlot],
        skipped: list[SkippedItem],
    ) -> list[MediaSlot]:
        slots = super()._plan(content, slots, skipped)
        images, videos = split_by_kind(slots)
        if len(videos) > self.capabilities.max_videos:
            raise PublishValidationError("Facebook supports only 1 video per post")
        if videos and images:
            raise PublishValidationError(
                "Facebook does not support mixing images and videos in one post"
            )
        if len(images) > self.capabilities.max_media:
            raise PublishValidationError(
                f"Facebook albums support at most {self.capabilities.max_media} images"
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
        if not slots:
            post = await self._post_feed(client, {"message": content or ""}, credential)
            return PublishedPost(post.id, 0, "Facebook post published")

        if len(slots) == 1 and slots[0].item.is_video:
            post = await self._post_video(client, slots[0], content, credential)
            return PublishedPost(post.id, 1, "Facebook video post published")

        if len(slots) == 1:
            post = await self._post_photo(client, slots[0], credential, caption=content or "")
            return PublishedPost(post.id, 1, "Facebook image post published")

        return await self._post_album(client, content, slots, credential, skipped)

    async def _post_album(
        self,
        client: httpx.AsyncClient,
        content: str | None,
        slots: list[MediaSlot],
        credential: DestinationCredential,
        skipped: list[SkippedItem],
    ) -> PublishedPost:
        photo_ids: list[str] = []
        for slot in slots:
            try:
                photo = await self._retry.run(
                    lambda slot=slot: self._post_photo(client, slot, credential, published=False),
                    description=f"facebook album photo #{slot.index}",
                )
            except Exception as e:
                self._skip(skipped, slot, f"Upload failed: {classify(e).message}")
                continue
            photo_ids.append(photo.id)

        if not photo_ids:
            raise UpstreamInvalidError("No album photos could be uploaded to Facebook")

        logger.debug("Facebook album photos staged", count=len(photo_ids))
        response = await client.post(
            self._url(credential, "feed"),
            json={
                "message": content or "",
                "attached_media": [{"media_fbid": photo_id} for photo_id in photo_ids],
                "access_token": credential.access_token,
            },
            timeout=self._metadata_timeout,
        )
        post = self._parse(_GraphObject, response)
        return PublishedPost(
            post.id,
            len(photo_ids),
            f"Facebook album with {plural(len(photo_ids), 'image')} published",
        )

    async def _post_feed(
        self,
        client: httpx.AsyncClient,
        fields: dict,
        credential: DestinationCredential,
    ) -> _GraphObject:
        response = await client.post(
            self._url(credential, "feed"),
            data={**fields, "access_token": credential.access_token},
            timeout=self._metadata_timeout,
        )
        return self._parse(_GraphObject, response)

    async def _post_photo(
        self,
        client: httpx.AsyncClient,
        slot: MediaSlot,
        credential: DestinationCredential,
        caption: str | None = None,
        published: bool = True,
    ) -> _GraphObject:
        item = slot.item
        fields = {"access_token": credential.access_token}
        if caption is not None:
            fields["caption"] = caption
        if not published:
            fields["published"] = "false"

        timeout = self._settings.timeout_for(item.kind)
        if item.is_remote:
            response = await client.post(
                self._url(credential, "photos"),
                data={**fields, "url": item.url},
                timeout=timeout,
            )
        else:
            response = await client.post(
                self._url(credential, "photos"),
                data=fields,
                files={"source": (item.filename, item.data, item.mime_type)},
                timeout=timeout,
            )
        return self._parse(_GraphObject, response)

    async def _post_video(
        self,
        client: httpx.AsyncClient,
        slot: MediaSlot,
        content: str | None,
        credential: DestinationCredential,
    ) -> _GraphObject:
        item = slot.item
        fields = {"description": content or "", "access_token": credential.access_token}
        timeout = self._settings.timeout_for(item.kind)
        if item.is_remote:
            response = await client.post(
                self._url(credential, "videos"),
                data={**fields, "file_url": item.url},
                timeout=timeout,
            )
        else:
            response = await client.post(
                self._url(credential, "videos"),
                data=fields,
                files={"source": (item.filename, item.data, item.mime_type)},
                timeout=timeout,
            )
        return self._parse(_GraphObject, response)

    def _url(self, credential: DestinationCredential, edge: str) -> str:
        return f"{self._settings.graph_api_url}/{credential.page_id}/{edge}"
