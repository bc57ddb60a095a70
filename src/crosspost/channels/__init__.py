from .base import BaseDestinationAdapter, MediaSlot, PublishedPost
from .twitter import TwitterAdapter
from .facebook import FacebookAdapter
from .linkedin import LinkedInAdapter
from .instagram import InstagramAdapter
from .instagram_container import ContainerState, ContainerStatusPoller, MediaContainer

__all__ = [
    "BaseDestinationAdapter",
    "MediaSlot",
    "PublishedPost",
    "TwitterAdapter",
    "FacebookAdapter",
    "LinkedInAdapter",
    "InstagramAdapter",
    "ContainerState",
    "ContainerStatusPoller",
    "MediaContainer",
]
