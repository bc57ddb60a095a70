import hashlib
import mimetypes

import structlog
from aiobotocore.session import get_session

from ...config import Settings
from ...domain.media import MediaKind
from ...domain.ports import ObjectStoreUploader

logger = structlog.get_logger()

DEFAULT_EXTENSIONS = {MediaKind.IMAGE: ".jpg", MediaKind.VIDEO: ".mp4"}


class S3ObjectStore(ObjectStoreUploader):
    """S3-backed object store producing publicly fetchable media URLs."""

    def __init__(
        self,
        bucket: str,
        region: str = "us-east-1",
        prefix: str = "crosspost-media",
        public_base_url: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        self._bucket = bucket
        self._region = region
        self._prefix = prefix.strip("/")
        self._public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self._endpoint_url = endpoint_url
        self._session = get_session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3ObjectStore | None":
        """Build the store from settings, or None when no bucket is configured."""
        if not settings.object_store_bucket:
            return None
        return cls(
            bucket=settings.object_store_bucket,
            region=settings.aws_region,
            prefix=settings.object_store_prefix,
            public_base_url=settings.object_store_public_base_url,
            endpoint_url=settings.aws_endpoint_url,
        )

    async def upload(self, data: bytes, mime_type: str, kind: MediaKind) -> str:
        key = self.key_for(data, mime_type, kind)

        async with self._session.create_client(
            "s3",
            region_name=self._region,
            endpoint_url=self._endpoint_url,
        ) as client:
            await client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentType=mime_type,
            )

        logger.info("Media stored", bucket=self._bucket, key=key, size=len(data))
        return self.url_for(key)

    def key_for(self, data: bytes, mime_type: str, kind: MediaKind) -> str:
        # Content-addressed: identical payloads map to the same object
        digest = hashlib.sha256(data).hexdigest()[:32]
        extension = mimetypes.guess_extension(mime_type) or DEFAULT_EXTENSIONS[kind]
        if extension == ".jpe":
            extension = ".jpg"
        return f"{self._prefix}/{kind.value}s/{digest}{extension}"

    def url_for(self, key: str) -> str:
        if self._public_base_url:
            return f"{self._public_base_url}/{key}"
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{key}"
