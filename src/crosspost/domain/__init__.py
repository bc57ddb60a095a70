from .capabilities import CAPABILITIES, DestinationCapabilities, describe_capabilities
from .errors import (
    ErrorKind,
    MediaProcessingError,
    PublishError,
    PublishValidationError,
    UpstreamInvalidError,
)
from .media import MediaItem, MediaKind
from .models import (
    BatchReport,
    Destination,
    DestinationCredential,
    DestinationResult,
    PublishRequest,
    SkippedItem,
)

__all__ = [
    "BatchReport",
    "CAPABILITIES",
    "Destination",
    "DestinationCapabilities",
    "DestinationCredential",
    "DestinationResult",
    "ErrorKind",
    "MediaItem",
    "MediaKind",
    "MediaProcessingError",
    "PublishError",
    "PublishRequest",
    "PublishValidationError",
    "SkippedItem",
    "UpstreamInvalidError",
    "describe_capabilities",
]
