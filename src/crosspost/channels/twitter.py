import httpx
from pydantic import BaseModel

from ..domain.errors import ErrorKind
from ..domain.media import MediaItem, MediaKind
from ..domain.models import Destination, DestinationCredential, SkippedItem
from ..infrastructure.error_classifier import classify
from .base import BaseDestinationAdapter, MediaSlot, PublishedPost, plural


class _MediaUploadResponse(BaseModel):
    media_id_string: str


class _Tweet(BaseModel):
    id: str
    text: str | None = None


class _TweetResponse(BaseModel):
    data: _Tweet


class TwitterAdapter(BaseDestinationAdapter):
    """
    Twitter/X adapter: per-item media upload, then one tweet.

    Media policy: the first item's kind decides the tweet's kind. Items of the
    other kind are dropped, then the selection is cut to 4 images or 1 video.
    Dropped and failed items are recorded as skipped; the tweet still goes out.
    """

    FAILURE_MESSAGES = {
        ErrorKind.AUTH: "Twitter authentication failed. Please reconnect your account.",
        ErrorKind.RATE_LIMIT: "Twitter rate limit exceeded. Please try again later.",
    }

    @property
    def destination(self) -> Destination:
        return Destination.TWITTER

    def _plan(
        self,
        content: str | None,
        slots: list[MediaSlot],
        skipped: list[SkippedItem],
    ) -> list[MediaSlot]:
        slots = super()._plan(content, slots, skipped)
        if not slots:
            return []

        primary = slots[0].item.kind
        limit = self.capabilities.max_videos if primary is MediaKind.VIDEO else self.capabilities.max_media
        selected: list[MediaSlot] = []
        for slot in slots:
            if slot.item.kind is not primary:
                self._skip(skipped, slot, "Tweets cannot mix images and videos")
            elif len(selected) >= limit:
                self._skip(skipped, slot, f"Tweets allow at most {plural(limit, primary.value)}")
            else:
                selected.append(slot)
        return selected

    async def _publish(
        self,
        client: httpx.AsyncClient,
        content: str | None,
        slots: list[MediaSlot],
        credential: DestinationCredential,
        skipped: list[SkippedItem],
    ) -> PublishedPost:
        media_ids: list[str] = []
        for slot in slots:
            try:
                media_id = await self._retry.run(
                    lambda item=slot.item: self._upload_media(client, item, credential),
                    description=f"twitter media upload #{slot.index}",
                )
            except Exception as e:
                self._skip(skipped, slot, f"Upload failed: {classify(e).message}")
                continue
            media_ids.append(media_id)

        payload: dict = {"text": content or " "}
        if media_ids:
            payload["media"] = {"media_ids": media_ids}

        response = await client.post(
            f"{self._settings.twitter_api_url}/tweets",
            json=payload,
            headers=self._headers(credential),
            timeout=self._metadata_timeout,
        )
        tweet = self._parse(_TweetResponse, response).data

        return PublishedPost(
            post_id=tweet.id,
            media_count=len(media_ids),
            message=f"Tweet with {plural(len(media_ids), 'media file')} posted",
        )

    async def _upload_media(
        self,
        client: httpx.AsyncClient,
        item: MediaItem,
        credential: DestinationCredential,
    ) -> str:
        data, content_type = await self._read_bytes(client, item)
        category = "tweet_video" if item.kind is MediaKind.VIDEO else "tweet_image"

        response = await client.post(
            self._settings.twitter_upload_url,
            files={"media": (item.filename, data, content_type)},
            data={"media_category": category},
            headers=self._headers(credential),
            timeout=self._settings.timeout_for(item.kind),
        )
        return self._parse(_MediaUploadResponse, response).media_id_string

    @staticmethod
    def _headers(credential: DestinationCredential) -> dict[str, str]:
        return {"Authorization": f"Bearer {credential.access_token}"}
