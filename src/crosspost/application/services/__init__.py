from .media_normalizer import MediaNormalizer, NormalizedMedia
from .publishing_service import PublishingService

__all__ = [
    "MediaNormalizer",
    "NormalizedMedia",
    "PublishingService",
]
