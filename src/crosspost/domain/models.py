"""
Request and result types that cross the dispatch boundary.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import ErrorKind, PublishValidationError
from .media import MediaItem, MediaKind


class Destination(str, Enum):
    """Supported publishing destinations."""

    TWITTER = "twitter"
    FACEBOOK = "facebook"
    LINKEDIN = "linkedin"
    INSTAGRAM = "instagram"


def normalize_destination(value: str) -> str:
    return str(value.value if isinstance(value, Destination) else value).strip().lower()


@dataclass(frozen=True)
class DestinationCredential:
    """Already-valid credential record for one destination."""

    access_token: str = field(repr=False)
    page_id: str | None = None  # Facebook page
    account_id: str | None = None  # Instagram business account
    user_id: str | None = None  # LinkedIn person
    organization_id: str | None = None  # LinkedIn organization


@dataclass(frozen=True)
class SkippedItem:
    """A media item an adapter dropped while still publishing the post."""

    index: int
    kind: MediaKind
    reason: str


@dataclass(frozen=True)
class PublishRequest:
    """One logical post fanned out to several destinations."""

    content: str | None
    media: tuple[MediaItem, ...] = ()
    destinations: tuple[str, ...] = ()
    credentials: Mapping[str, DestinationCredential] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "media", tuple(self.media))
        object.__setattr__(self, "destinations", _dedupe(self.destinations))
        object.__setattr__(
            self,
            "credentials",
            {normalize_destination(k): v for k, v in dict(self.credentials).items()},
        )

        if not self.destinations:
            raise PublishValidationError("At least one destination is required")
        if not self.has_content and not self.media:
            raise PublishValidationError("Either content or media is required")

    @property
    def has_content(self) -> bool:
        return bool(self.content and self.content.strip())

    def credential_for(self, destination: str) -> DestinationCredential | None:
        return self.credentials.get(normalize_destination(destination))


def _dedupe(destinations: Iterable[str]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for destination in destinations:
        name = normalize_destination(destination)
        if name:
            seen.setdefault(name, None)
    return tuple(seen)


@dataclass(frozen=True)
class DestinationResult:
    """Outcome of publishing to a single destination."""

    destination: str
    success: bool
    post_id: str | None = None
    error_kind: ErrorKind | None = None
    message: str | None = None
    retry_after: int | None = None
    media_count: int = 0
    skipped: tuple[SkippedItem, ...] = ()

    def __post_init__(self) -> None:
        if self.success and (self.post_id is None or self.error_kind is not None):
            raise ValueError("Successful result requires a post_id and no error")
        if not self.success and (self.error_kind is None or self.post_id is not None):
            raise ValueError("Failed result requires an error_kind and no post_id")

    @classmethod
    def succeeded(
        cls,
        destination: str,
        post_id: str,
        message: str | None = None,
        media_count: int = 0,
        skipped: Iterable[SkippedItem] = (),
    ) -> "DestinationResult":
        return cls(
            destination=destination,
            success=True,
            post_id=post_id,
            message=message,
            media_count=media_count,
            skipped=tuple(skipped),
        )

    @classmethod
    def failed(
        cls,
        destination: str,
        error_kind: ErrorKind,
        message: str,
        retry_after: int | None = None,
        skipped: Iterable[SkippedItem] = (),
    ) -> "DestinationResult":
        return cls(
            destination=destination,
            success=False,
            error_kind=error_kind,
            message=message,
            retry_after=retry_after,
            skipped=tuple(skipped),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "destination": self.destination,
            "success": self.success,
            "message": self.message,
        }
        if self.success:
            data["post_id"] = self.post_id
            data["media_count"] = self.media_count
        else:
            data["error_kind"] = self.error_kind.value
            if self.retry_after is not None:
                data["retry_after"] = self.retry_after
        if self.skipped:
            data["skipped"] = [
                {"index": s.index, "kind": s.kind.value, "reason": s.reason}
                for s in self.skipped
            ]
        return data


@dataclass(frozen=True)
class BatchReport:
    """Aggregated per-destination results, in request order."""

    results: tuple[DestinationResult, ...]

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def any_succeeded(self) -> bool:
        return self.success_count > 0

    @property
    def all_succeeded(self) -> bool:
        return bool(self.results) and self.failure_count == 0

    @property
    def summary(self) -> str:
        return f"Published to {self.success_count}/{len(self.results)} destinations"

    def result_for(self, destination: str) -> DestinationResult | None:
        name = normalize_destination(destination)
        return next((r for r in self.results if r.destination == name), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.any_succeeded,
            "total": len(self.results),
            "successful": self.success_count,
            "failed": self.failure_count,
            "summary": self.summary,
            "results": [r.to_dict() for r in self.results],
        }
