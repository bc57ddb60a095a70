"""
Static per-destination publishing limits.

Adapters read their limits from this table so the values reported to callers
are the ones actually enforced.
"""

from dataclasses import dataclass
from typing import Any

from .media import MediaKind
from .models import Destination

MB = 1024 * 1024
GB = 1024 * MB


@dataclass(frozen=True)
class DestinationCapabilities:
    """Media limits for one destination."""

    max_media: int
    max_videos: int
    allows_mixed_kinds: bool
    requires_media: bool
    max_image_bytes: int
    max_video_bytes: int
    video_formats: tuple[str, ...]
    notes: str
    supported_kinds: tuple[MediaKind, ...] = (MediaKind.IMAGE, MediaKind.VIDEO)

    def max_bytes_for(self, kind: MediaKind) -> int:
        return self.max_video_bytes if kind is MediaKind.VIDEO else self.max_image_bytes

    def as_dict(self) -> dict[str, Any]:
        return {
            "max_media": self.max_media,
            "max_videos": self.max_videos,
            "supported_kinds": [k.value for k in self.supported_kinds],
            "allows_mixed_kinds": self.allows_mixed_kinds,
            "requires_media": self.requires_media,
            "max_image_bytes": self.max_image_bytes,
            "max_video_bytes": self.max_video_bytes,
            "video_formats": list(self.video_formats),
            "notes": self.notes,
        }


CAPABILITIES: dict[Destination, DestinationCapabilities] = {
    Destination.TWITTER: DestinationCapabilities(
        max_media=4,
        max_videos=1,
        allows_mixed_kinds=False,
        requires_media=False,
        max_image_bytes=5 * MB,
        max_video_bytes=512 * MB,
        video_formats=("mp4", "mov"),
        notes="Max 1 video OR up to 4 images per tweet",
    ),
    Destination.FACEBOOK: DestinationCapabilities(
        max_media=10,
        max_videos=1,
        allows_mixed_kinds=False,
        requires_media=False,
        max_image_bytes=10 * MB,
        max_video_bytes=4 * GB,
        video_formats=("mp4", "mov", "avi"),
        notes="Supports a single video or up to 10 images (album)",
    ),
    Destination.LINKEDIN: DestinationCapabilities(
        max_media=9,
        max_videos=9,
        allows_mixed_kinds=True,
        requires_media=False,
        max_image_bytes=10 * MB,
        max_video_bytes=5 * GB,
        video_formats=("mp4", "mov", "wmv", "flv", "avi"),
        notes="Supports both images and videos",
    ),
    Destination.INSTAGRAM: DestinationCapabilities(
        max_media=10,
        max_videos=1,
        allows_mixed_kinds=False,
        requires_media=True,
        max_image_bytes=8 * MB,
        max_video_bytes=100 * MB,
        video_formats=("mp4", "mov"),
        notes="Max 1 video OR up to 10 images per post (no mixing)",
    ),
}


def describe_capabilities() -> dict[Destination, DestinationCapabilities]:
    """Return the per-destination limits table. No network calls."""
    return dict(CAPABILITIES)
