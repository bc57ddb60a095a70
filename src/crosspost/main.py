"""
Composition root.

Wires configuration, logging and the concrete adapters behind the ports.
The transport layer calls build_publishing_service() once at startup.
"""

import structlog

from .application.services import PublishingService
from .config import Settings, settings as default_settings
from .domain.ports import CredentialStore
from .infrastructure.adapters import AdapterRegistry, DispatchCoordinator, S3ObjectStore
from .infrastructure.logging import configure_logging

logger = structlog.get_logger()


def build_coordinator(settings: Settings | None = None) -> DispatchCoordinator:
    """Create the dispatch coordinator with adapters configured from settings."""
    settings = settings or default_settings
    object_store = S3ObjectStore.from_settings(settings)
    if object_store is None:
        logger.warning("No object store bucket configured, byte media cannot reach Instagram")

    registry = AdapterRegistry(
        settings=settings,
        object_store=object_store,
        retry_policy=settings.media_retry_policy(),
    )
    return DispatchCoordinator(registry)


def build_publishing_service(
    credential_store: CredentialStore,
    settings: Settings | None = None,
) -> PublishingService:
    """Configure logging and wire the publishing service."""
    settings = settings or default_settings
    configure_logging(settings.service_name, level=settings.log_level, json=settings.log_json)
    logger.info("Starting publishing core", service=settings.service_name)
    return PublishingService(build_coordinator(settings), credential_store)
