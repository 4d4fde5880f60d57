"""notifyhub: send one notification to many services described by URLs.

Usage:
    from notifyhub import Dispatcher, NotifyType, with_tags

    dispatcher = Dispatcher()
    dispatcher.add("ntfy://ntfy.sh/alerts", "ops")
    responses = await dispatcher.notify("Disk", "91% used", NotifyType.WARNING, with_tags("ops"))
"""

__version__ = "1.0.0"

from notifyhub.core.exceptions import (  # noqa: E402
    AttachmentError,
    AttachmentTooLargeError,
    AuthError,
    CanceledError,
    ConfigurationError,
    DeadlineExceededError,
    DeliveryError,
    NotifyError,
    ProviderError,
    RateLimitedError,
    TransportError,
    UnknownSchemeError,
    URLParseError,
)
from notifyhub.core.types import BodyFormat, NotificationRequest, NotifyType  # noqa: E402
from notifyhub.features.attachments import AttachmentManager  # noqa: E402
from notifyhub.features.dispatch import (  # noqa: E402
    Dispatcher,
    NotifyResponse,
    with_attachments,
    with_body_format,
    with_tags,
    with_url,
)

__all__ = [
    "AttachmentError",
    "AttachmentManager",
    "AttachmentTooLargeError",
    "AuthError",
    "BodyFormat",
    "CanceledError",
    "ConfigurationError",
    "DeadlineExceededError",
    "DeliveryError",
    "Dispatcher",
    "NotificationRequest",
    "NotifyError",
    "NotifyResponse",
    "NotifyType",
    "ProviderError",
    "RateLimitedError",
    "TransportError",
    "URLParseError",
    "UnknownSchemeError",
    "__version__",
    "with_attachments",
    "with_body_format",
    "with_tags",
    "with_url",
]
