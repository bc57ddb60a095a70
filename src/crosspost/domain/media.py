import re
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlparse

from .errors import PublishValidationError

VIDEO_URL_PATTERN = re.compile(r"\.(mp4|mov|avi|wmv|flv|webm|m4v)(\?|$)", re.IGNORECASE)


class MediaKind(str, Enum):
    """Kind of media attached to a post."""

    IMAGE = "image"
    VIDEO = "video"


def kind_from_mime_type(mime_type: str) -> MediaKind:
    """Derive the media kind from a MIME type such as ``image/png``."""
    major = mime_type.split("/", 1)[0].strip().lower()
    if major == "image":
        return MediaKind.IMAGE
    if major == "video":
        return MediaKind.VIDEO
    raise PublishValidationError(f"Unsupported media type: {mime_type or 'unknown'}")


def kind_from_url(url: str) -> MediaKind:
    """Derive the media kind from a URL's extension, defaulting to image."""
    if VIDEO_URL_PATTERN.search(url):
        return MediaKind.VIDEO
    return MediaKind.IMAGE


@dataclass(frozen=True)
class MediaItem:
    """
    One piece of media to attach to a post.

    Holds either raw bytes with their MIME type, or a remote URL. Never both,
    never neither. The kind is derived from the MIME type or URL extension
    unless given explicitly.
    """

    data: bytes | None = None
    mime_type: str | None = None
    url: str | None = None
    kind: MediaKind | None = None
    filename: str | None = None

    def __post_init__(self) -> None:
        has_bytes = self.data is not None
        has_url = self.url is not None
        if has_bytes == has_url:
            raise PublishValidationError("Media must have exactly one of bytes or url")

        if has_bytes:
            if not self.data:
                raise PublishValidationError("Media bytes cannot be empty")
            if not self.mime_type:
                raise PublishValidationError("Media bytes require a MIME type")
            derived = kind_from_mime_type(self.mime_type)
        else:
            object.__setattr__(self, "url", self.url.strip())
            parsed = urlparse(self.url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise PublishValidationError(f"Media URL must be HTTP(S): {self.url}")
            derived = kind_from_url(self.url)

        kind = MediaKind(self.kind) if self.kind is not None else derived
        object.__setattr__(self, "kind", kind)
        if self.filename is None:
            default = "video.mp4" if kind is MediaKind.VIDEO else "image.jpg"
            if has_url:
                default = self.url.split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1] or default
            object.__setattr__(self, "filename", default)

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        mime_type: str,
        filename: str | None = None,
    ) -> "MediaItem":
        return cls(data=data, mime_type=mime_type, filename=filename)

    @classmethod
    def from_url(cls, url: str, kind: MediaKind | None = None) -> "MediaItem":
        return cls(url=url, kind=kind)

    @property
    def is_remote(self) -> bool:
        return self.url is not None

    @property
    def is_video(self) -> bool:
        return self.kind is MediaKind.VIDEO

    @property
    def size(self) -> int | None:
        """Payload size in bytes, unknown for remote items."""
        return len(self.data) if self.data is not None else None

    def describe(self) -> str:
        """Short, log-safe description."""
        if self.is_remote:
            return f"{self.kind.value} url {self.filename}"
        return f"{self.kind.value} file {self.filename} ({self.size} bytes)"
