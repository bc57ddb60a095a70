"""
Registry of destination adapters.

Builds the adapter for a destination on first use and caches it on the
registry instance. Adapters hold configuration only, so one instance can
serve concurrent publishes.
"""

from ...application.services.media_normalizer import MediaNormalizer
from ...channels import FacebookAdapter, InstagramAdapter, LinkedInAdapter, TwitterAdapter
from ...channels.base import ClientFactory
from ...config import Settings, settings as default_settings
from ...domain.errors import PublishValidationError
from ...domain.models import Destination, normalize_destination
from ...domain.ports import DestinationAdapter, ObjectStoreUploader
from ..retry import RetryPolicy


class AdapterRegistry:
    """
    Creates and caches one adapter per destination.

    Encapsulates the construction and configuration of adapters so the
    coordinator only deals with the DestinationAdapter port.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        object_store: ObjectStoreUploader | None = None,
        retry_policy: RetryPolicy | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._settings = settings or default_settings
        self._object_store = object_store
        self._retry_policy = retry_policy
        self._client_factory = client_factory
        self._instances: dict[Destination, DestinationAdapter] = {}

    def get(self, destination: str | Destination) -> DestinationAdapter:
        """
        Get or create the adapter for a destination.

        Args:
            destination: Destination identifier (case-insensitive)

        Returns:
            DestinationAdapter for the destination

        Raises:
            PublishValidationError: If the destination is not supported
        """
        name = normalize_destination(destination)
        try:
            key = Destination(name)
        except ValueError:
            raise PublishValidationError(f"Unsupported destination: {name}") from None

        if key not in self._instances:
            self._instances[key] = self._create_adapter(key)
        return self._instances[key]

    def _create_adapter(self, destination: Destination) -> DestinationAdapter:
        options = {
            "retry_policy": self._retry_policy,
            "client_factory": self._client_factory,
        }
        match destination:
            case Destination.TWITTER:
                return TwitterAdapter(self._settings, **options)
            case Destination.FACEBOOK:
                return FacebookAdapter(self._settings, **options)
            case Destination.LINKEDIN:
                return LinkedInAdapter(self._settings, **options)
            case Destination.INSTAGRAM:
                return InstagramAdapter(
                    self._settings,
                    normalizer=MediaNormalizer(self._object_store),
                    **options,
                )
            case _:
                raise PublishValidationError(f"Unsupported destination: {destination}")

    def reset(self) -> None:
        """Drop all cached adapter instances."""
        self._instances.clear()
