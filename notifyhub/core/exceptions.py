"""Exception hierarchy for notification dispatch.

Errors fall in two groups:

- Registration-time errors (``UnknownSchemeError``, ``URLParseError``,
  ``ConfigurationError``) are raised from ``Dispatcher.add`` and leave the
  dispatcher untouched.
- Delivery-time errors (subclasses of ``DeliveryError``) are raised by
  adapters during ``send`` and captured per destination in the response list.
"""

from __future__ import annotations

from typing import Any

# Provider response bodies are cut to this many characters in error messages.
MAX_ERROR_BODY_LENGTH = 500


def truncate_body(body: str | bytes | None, limit: int = MAX_ERROR_BODY_LENGTH) -> str:
    """Return a printable, length-limited rendition of a response body.

    Args:
        body: Raw response body.
        limit: Maximum number of characters to keep.

    Returns:
        Decoded body, suffixed with ``...`` when it was cut.
    """
    if body is None:
        return ""
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    body = body.strip()
    if len(body) <= limit:
        return body
    return body[:limit] + "..."


class NotifyError(Exception):
    """Base exception for the library.

    Attributes:
        detail: Human-readable error message.
        extra: Additional context about the error.

    Example:
        raise NotifyError(
            "Destination rejected the payload",
            extra={"service_id": "discord"},
        )
    """

    def __init__(self, detail: str, extra: dict[str, Any] | None = None) -> None:
        """Initialize the error.

        Args:
            detail: Human-readable error message.
            extra: Additional context about the error.
        """
        self.detail = detail
        self.extra = extra or {}
        super().__init__(detail)


class UnknownSchemeError(NotifyError):
    """Raised when no adapter is registered for a URL scheme.

    Example:
        raise UnknownSchemeError("invalid")
    """

    def __init__(self, scheme: str) -> None:
        self.scheme = scheme
        super().__init__(f"unknown service: {scheme}", extra={"scheme": scheme})


class URLParseError(NotifyError):
    """Raised for a malformed URL or a missing required field."""

    def __init__(self, detail: str, url: str | None = None) -> None:
        self.url = url
        super().__init__(detail, extra={"url": url} if url else None)


class ConfigurationError(NotifyError):
    """Raised for a forbidden combination of otherwise valid settings.

    Example:
        raise ConfigurationError(
            "emergency priority with retry requires expire",
            extra={"priority": 2, "retry": 60},
        )
    """


class DeliveryError(NotifyError):
    """Base class for errors raised while sending to a destination.

    Attributes:
        service_id: Adapter that raised the error, when known.
    """

    def __init__(
        self,
        detail: str,
        service_id: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.service_id = service_id
        super().__init__(detail, extra=extra)


class ProviderError(DeliveryError):
    """Raised when a provider answers with a non-2xx status.

    Attributes:
        status_code: HTTP status returned by the provider.
        body: Truncated response body for diagnostics.

    Example:
        raise ProviderError(
            status_code=400,
            body='{"message": "Invalid Form Body"}',
            service_id="discord",
        )
    """

    def __init__(
        self,
        status_code: int,
        body: str | bytes | None = None,
        service_id: str | None = None,
        detail: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.body = truncate_body(body)
        message = detail or f"provider returned status {status_code}"
        if self.body:
            message = f"{message}: {self.body}"
        super().__init__(
            message,
            service_id=service_id,
            extra={"status_code": status_code},
        )


class AuthError(ProviderError):
    """Raised when a provider rejects credentials (401/403)."""


class RateLimitedError(ProviderError):
    """Raised when a provider throttles the request (429)."""


class TransportError(DeliveryError):
    """Raised for network-level failures (DNS, refused, TLS, reset, timeout).

    Attributes:
        cause: Underlying exception.
    """

    def __init__(
        self,
        detail: str,
        cause: BaseException | None = None,
        service_id: str | None = None,
    ) -> None:
        self.cause = cause
        super().__init__(
            detail,
            service_id=service_id,
            extra={"cause": type(cause).__name__} if cause else None,
        )


class CanceledError(DeliveryError):
    """Raised when the caller cancels a dispatch before the send finished."""

    def __init__(self, service_id: str | None = None) -> None:
        super().__init__("notification canceled", service_id=service_id)


class DeadlineExceededError(DeliveryError):
    """Raised when the dispatch deadline expires before the send finished."""

    def __init__(self, timeout: float, service_id: str | None = None) -> None:
        self.timeout = timeout
        super().__init__(
            f"deadline exceeded after {timeout:.3f}s",
            service_id=service_id,
            extra={"timeout": timeout},
        )


class AttachmentError(NotifyError):
    """Raised for a missing, unreadable or unfetchable attachment."""


class AttachmentTooLargeError(AttachmentError):
    """Raised when an attachment exceeds the configured maximum size."""

    def __init__(self, size: int, max_size: int) -> None:
        self.size = size
        self.max_size = max_size
        super().__init__(
            f"attachment size ({size} bytes) exceeds maximum ({max_size} bytes)",
            extra={"size": size, "max_size": max_size},
        )


class TemplateRenderError(NotifyError):
    """Raised when a stored notification template fails to render."""


class SchedulerError(NotifyError):
    """Raised for invalid scheduler operations (unknown job, bad cron)."""


def classify_status(
    status_code: int,
    body: str | bytes | None = None,
    service_id: str | None = None,
) -> ProviderError:
    """Map an HTTP error status to the matching exception.

    Args:
        status_code: HTTP status code (>= 400).
        body: Response body.
        service_id: Adapter the response belongs to.

    Returns:
        ``AuthError`` for 401/403, ``RateLimitedError`` for 429,
        ``ProviderError`` otherwise.
    """
    if status_code in (401, 403):
        return AuthError(status_code, body, service_id=service_id, detail="authentication failed")
    if status_code == 429:
        return RateLimitedError(status_code, body, service_id=service_id, detail="rate limited")
    return ProviderError(status_code, body, service_id=service_id)


__all__ = [
    "MAX_ERROR_BODY_LENGTH",
    "AttachmentError",
    "AttachmentTooLargeError",
    "AuthError",
    "CanceledError",
    "ConfigurationError",
    "DeadlineExceededError",
    "DeliveryError",
    "NotifyError",
    "ProviderError",
    "RateLimitedError",
    "SchedulerError",
    "TemplateRenderError",
    "TransportError",
    "URLParseError",
    "UnknownSchemeError",
    "classify_status",
    "truncate_body",
]
