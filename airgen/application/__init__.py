"""Application services."""

from .review import CommitProtocol
from .studio import StudioService, configure_studio_service, get_studio_service, reset_studio_state

__all__ = [
    "CommitProtocol",
    "StudioService",
    "configure_studio_service",
    "get_studio_service",
    "reset_studio_state",
]
