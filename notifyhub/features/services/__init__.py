"""Destination adapters and the scheme registry.

Adapter modules are imported lazily by the registry; import them directly
(``notifyhub.features.services.discord``) when a concrete class is needed.
"""

from notifyhub.features.services.base import (
    AttachmentMode,
    ParsedServiceURL,
    ServiceAdapter,
    check_url,
    deliver_all,
)
from notifyhub.features.services.registry import (
    ServiceRegistry,
    build_default_registry,
    get_service_registry,
)

__all__ = [
    "AttachmentMode",
    "ParsedServiceURL",
    "ServiceAdapter",
    "ServiceRegistry",
    "build_default_registry",
    "check_url",
    "deliver_all",
    "get_service_registry",
]
