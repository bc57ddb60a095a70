"""
Outbound port for turning raw media bytes into public URLs.

Destinations that only accept publicly fetchable media (Instagram) rely on
this capability. Implementations live in the infrastructure layer.
"""

from abc import ABC, abstractmethod

from ..media import MediaKind


class ObjectStoreUploader(ABC):
    """Outbound port for uploading media to public object storage."""

    @abstractmethod
    async def upload(self, data: bytes, mime_type: str, kind: MediaKind) -> str:
        """
        Upload media bytes.

        Args:
            data: Raw media bytes
            mime_type: MIME type of the payload
            kind: Image or video

        Returns:
            Publicly fetchable URL of the stored object
        """
        ...
