from dataclasses import dataclass

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field

from ..domain.errors import ErrorKind, PublishValidationError, UpstreamInvalidError
from ..domain.media import MediaItem, MediaKind
from ..domain.models import Destination, DestinationCredential, SkippedItem
from ..infrastructure.error_classifier import classify
from .base import BaseDestinationAdapter, MediaSlot, PublishedPost, plural

logger = structlog.get_logger()

UPLOAD_MECHANISM = "com.linkedin.digitalmedia.uploading.MediaUploadHttpRequest"
RECIPES = {
    MediaKind.IMAGE: "urn:li:digitalmediaRecipe:feedshare-image",
    MediaKind.VIDEO: "urn:li:digitalmediaRecipe:feedshare-video",
}


class _UploadHttpRequest(BaseModel):
    upload_url: str = Field(alias="uploadUrl")


class _UploadMechanism(BaseModel):
    http_request: _UploadHttpRequest = Field(alias=UPLOAD_MECHANISM)


class _RegisteredAsset(BaseModel):
    asset: str
    upload_mechanism: _UploadMechanism = Field(alias="uploadMechanism")


class _RegisterUploadResponse(BaseModel):
    value: _RegisteredAsset


class _UgcPost(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None


@dataclass(frozen=True)
class RegisteredUpload:
    """Upload intent returned by LinkedIn: where to PUT bytes, and the asset URN."""

    asset: str
    upload_url: str
    kind: MediaKind


class LinkedInAdapter(BaseDestinationAdapter):
    """
    LinkedIn UGC post adapter with asset-based media upload.

    Every item goes through register -> binary PUT; the asset is usable as
    soon as the PUT succeeds. Items beyond the 9-item limit and items whose
    upload fails are skipped, and the post is published with the rest.
    """

    FAILURE_MESSAGES = {
        ErrorKind.AUTH: "LinkedIn authentication failed. Please reconnect your account.",
        ErrorKind.PERMISSION: "Permission denied. Check your LinkedIn app permissions for posting.",
        ErrorKind.RATE_LIMIT: "LinkedIn rate limit exceeded. Please try again later.",
    }

    @property
    def destination(self) -> Destination:
        return Destination.LINKEDIN

    def _check_credential(self, credential: DestinationCredential) -> None:
        super()._check_credential(credential)
        if not (credential.user_id or credential.organization_id):
            raise PublishValidationError("linkedin credential is missing: user_id")

    def _plan(
        self,
        content: str | None,
        slots: list[MediaSlot],
        skipped: list[SkippedItem],
    ) -> list[MediaSlot]:
        slots = super()._plan(content, slots, skipped)
        limit = self.capabilities.max_media
        for slot in slots[limit:]:
            self._skip(skipped, slot, f"LinkedIn posts allow at most {limit} media items")
        return slots[:limit]

    async def _publish(
        self,
        client: httpx.AsyncClient,
        content: str | None,
        slots: list[MediaSlot],
        credential: DestinationCredential,
        skipped: list[SkippedItem],
    ) -> PublishedPost:
        uploads: list[RegisteredUpload] = []
        for slot in slots:
            try:
                upload = await self._retry.run(
                    lambda item=slot.item: self._upload_media(client, item, credential),
                    description=f"linkedin media upload #{slot.index}",
                )
            except Exception as e:
                self._skip(skipped, slot, f"Upload failed: {classify(e).message}")
                continue
            uploads.append(upload)

        response = await client.post(
            f"{self._settings.linkedin_api_url}/ugcPosts",
            json=self._build_post(content, uploads, credential),
            headers=self._headers(credential),
            timeout=self._metadata_timeout,
        )
        response.raise_for_status()

        post_id = response.headers.get("x-restli-id")
        if response.content:
            post_id = _UgcPost.model_validate(response.json()).id or post_id
        if not post_id:
            raise UpstreamInvalidError("Invalid response from LinkedIn API - no post ID returned")

        return PublishedPost(
            post_id=post_id,
            media_count=len(uploads),
            message=f"LinkedIn post with {plural(len(uploads), 'media file')} published",
        )

    async def _upload_media(
        self,
        client: httpx.AsyncClient,
        item: MediaItem,
        credential: DestinationCredential,
    ) -> RegisteredUpload:
        data, _ = await self._read_bytes(client, item)
        upload = await self._register_upload(client, item.kind, credential)

        response = await client.put(
            upload.upload_url,
            content=data,
            headers={
                "Authorization": f"Bearer {credential.access_token}",
                "Content-Type": "application/octet-stream",
            },
            timeout=self._settings.timeout_for(item.kind),
        )
        response.raise_for_status()
        if response.status_code not in (200, 201):
            raise UpstreamInvalidError(
                f"LinkedIn {item.kind.value} binary upload failed with status: {response.status_code}"
            )

        logger.debug("LinkedIn asset uploaded", asset=upload.asset, kind=item.kind.value)
        return upload

    async def _register_upload(
        self,
        client: httpx.AsyncClient,
        kind: MediaKind,
        credential: DestinationCredential,
    ) -> RegisteredUpload:
        response = await client.post(
            f"{self._settings.linkedin_api_url}/assets",
            params={"action": "registerUpload"},
            json={
                "registerUploadRequest": {
                    "recipes": [RECIPES[kind]],
                    "owner": self._author(credential),
                    "serviceRelationships": [
                        {
                            "relationshipType": "OWNER",
                            "identifier": "urn:li:userGeneratedContent",
                        }
                    ],
                }
            },
            headers=self._headers(credential),
            timeout=self._metadata_timeout,
        )
        registered = self._parse(_RegisterUploadResponse, response).value
        return RegisteredUpload(
            asset=registered.asset,
            upload_url=registered.upload_mechanism.http_request.upload_url,
            kind=kind,
        )

    def _build_post(
        self,
        content: str | None,
        uploads: list[RegisteredUpload],
        credential: DestinationCredential,
    ) -> dict:
        if not uploads:
            category = "NONE"
        elif any(u.kind is MediaKind.VIDEO for u in uploads):
            category = "VIDEO"
        else:
            category = "IMAGE"

        share_content: dict = {
            "shareCommentary": {"text": content or " "},
            "shareMediaCategory": category,
        }
        if uploads:
            share_content["media"] = [
                {
                    "status": "READY",
                    "description": {"text": f"Media {i}"},
                    "media": upload.asset,
                    "title": {"text": f"Media {i}"},
                }
                for i, upload in enumerate(uploads, start=1)
            ]

        return {
            "author": self._author(credential),
            "lifecycleState": "PUBLISHED",
            "specificContent": {"com.linkedin.ugc.ShareContent": share_content},
            "visibility": {"com.linkedin.ugc.MemberNetworkVisibility": "PUBLIC"},
        }

    @staticmethod
    def _author(credential: DestinationCredential) -> str:
        if credential.organization_id:
            return f"urn:li:organization:{credential.organization_id}"
        return f"urn:li:person:{credential.user_id}"

    @staticmethod
    def _headers(credential: DestinationCredential) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {credential.access_token}",
            "X-Restli-Protocol-Version": "2.0.0",
        }
