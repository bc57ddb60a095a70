from .credential_store import CredentialStore
from .destination_adapter import DestinationAdapter
from .object_store import ObjectStoreUploader
from .social_media_publisher import SocialMediaPublisher

__all__ = [
    "CredentialStore",
    "DestinationAdapter",
    "ObjectStoreUploader",
    "SocialMediaPublisher",
]
