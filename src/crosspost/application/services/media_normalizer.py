"""
Application service that resolves media to publicly fetchable URLs.

Destinations that fetch media themselves (Instagram) need every item as a
URL. Raw byte items are pushed through the ObjectStoreUploader port; URL
items pass through untouched.
"""

import hashlib
from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog

from ...domain.media import MediaItem
from ...domain.models import SkippedItem
from ...domain.ports import ObjectStoreUploader

logger = structlog.get_logger()


@dataclass
class NormalizedMedia:
    """URL-only media plus the items that could not be uploaded."""

    items: list[MediaItem] = field(default_factory=list)
    # Input position of each entry in items
    indexes: list[int] = field(default_factory=list)
    skipped: list[SkippedItem] = field(default_factory=list)


class MediaNormalizer:
    """
    Converts raw-bytes media into URL media via object storage.

    Upload failures are per item: a failed item is dropped and recorded,
    the rest continue. Callers that need at least one item must re-check
    the count afterwards.
    """

    def __init__(self, uploader: ObjectStoreUploader | None) -> None:
        """
        Initialize with an object store.

        Args:
            uploader: ObjectStoreUploader implementation, or None when no
                      object storage is configured
        """
        self._uploader = uploader

    async def normalize(self, items: Sequence[MediaItem]) -> list[MediaItem]:
        """Return the items that could be resolved to URLs, in order."""
        return (await self.normalize_detailed(items)).items

    async def normalize_detailed(self, items: Sequence[MediaItem]) -> NormalizedMedia:
        result = NormalizedMedia()
        # Identical payloads within one call are uploaded once
        uploaded: dict[str, str] = {}

        for index, item in enumerate(items):
            if item.is_remote:
                result.items.append(item)
                result.indexes.append(index)
                continue

            if self._uploader is None:
                result.skipped.append(
                    SkippedItem(index=index, kind=item.kind, reason="No object store configured")
                )
                continue

            digest = hashlib.sha256(item.data).hexdigest()
            try:
                url = uploaded.get(digest)
                if url is None:
                    url = await self._uploader.upload(item.data, item.mime_type, item.kind)
                    uploaded[digest] = url
            except Exception as e:
                logger.warning(
                    "Media upload to object store failed",
                    index=index,
                    media=item.describe(),
                    error=str(e),
                )
                result.skipped.append(
                    SkippedItem(index=index, kind=item.kind, reason=f"Object store upload failed: {e}")
                )
                continue

            result.items.append(MediaItem.from_url(url, kind=item.kind))
            result.indexes.append(index)

        logger.debug(
            "Media normalized",
            requested=len(items),
            resolved=len(result.items),
            skipped=len(result.skipped),
        )
        return result
