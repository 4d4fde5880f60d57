"""Tests for the error taxonomy."""

from notifyhub.core import exceptions as exc


def test_unknown_scheme_names_scheme() -> None:
    error = exc.UnknownSchemeError("invalid")
    assert str(error) == "unknown service: invalid"
    assert error.extra == {"scheme": "invalid"}


def test_url_parse_error_keeps_url() -> None:
    error = exc.URLParseError("missing webhook token", url="discord://id")
    assert error.url == "discord://id"
    assert error.extra["url"] == "discord://id"


def test_provider_error_includes_truncated_body() -> None:
    error = exc.ProviderError(400, "x" * 900, service_id="discord")
    assert error.status_code == 400
    assert error.service_id == "discord"
    assert error.body.endswith("...")
    assert len(error.body) == exc.MAX_ERROR_BODY_LENGTH + 3
    assert str(error).startswith("provider returned status 400: ")


def test_provider_error_decodes_bytes() -> None:
    error = exc.ProviderError(500, b'{"message": "boom"}')
    assert error.body == '{"message": "boom"}'


def test_classify_status_maps_auth_and_throttling() -> None:
    assert isinstance(exc.classify_status(401), exc.AuthError)
    assert isinstance(exc.classify_status(403), exc.AuthError)
    assert isinstance(exc.classify_status(429), exc.RateLimitedError)
    error = exc.classify_status(502, service_id="slack")
    assert type(error) is exc.ProviderError
    assert error.service_id == "slack"


def test_delivery_errors_share_base() -> None:
    for error in (
        exc.TransportError("refused"),
        exc.CanceledError("ntfy"),
        exc.DeadlineExceededError(1.5, "ntfy"),
        exc.ProviderError(500),
    ):
        assert isinstance(error, exc.DeliveryError)
        assert isinstance(error, exc.NotifyError)


def test_canceled_and_deadline_messages() -> None:
    assert str(exc.CanceledError()) == "notification canceled"
    deadline = exc.DeadlineExceededError(0.25)
    assert "deadline exceeded" in str(deadline)
    assert deadline.timeout == 0.25


def test_transport_error_records_cause() -> None:
    cause = ConnectionRefusedError("nope")
    error = exc.TransportError("request failed", cause=cause, service_id="gotify")
    assert error.cause is cause
    assert error.extra["cause"] == "ConnectionRefusedError"


def test_attachment_too_large_fields() -> None:
    error = exc.AttachmentTooLargeError(11, 10)
    assert isinstance(error, exc.AttachmentError)
    assert error.size == 11
    assert error.max_size == 10
    assert "exceeds maximum" in str(error)


def test_truncate_body_handles_none() -> None:
    assert exc.truncate_body(None) == ""
    assert exc.truncate_body("  padded  ") == "padded"
