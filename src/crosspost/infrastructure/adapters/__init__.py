from .adapter_registry import AdapterRegistry
from .dispatch_coordinator import DispatchCoordinator
from .s3_object_store import S3ObjectStore

__all__ = [
    "AdapterRegistry",
    "DispatchCoordinator",
    "S3ObjectStore",
]
