"""Tests for the SMTP email adapter.

No SMTP server is contacted: ``aiosmtplib.SMTP`` is replaced with a recorder.
"""

from __future__ import annotations

import aiosmtplib
import pytest

from notifyhub.core.exceptions import AuthError, ProviderError, TransportError, URLParseError
from notifyhub.core.types import BodyFormat, NotificationRequest, NotifyType
from notifyhub.features.attachments import InlineAttachment
from notifyhub.features.services import email as email_module
from notifyhub.features.services.email import EmailService, is_valid_email


class RecordingSMTP:
    """Stands in for ``aiosmtplib.SMTP`` and records what would be sent."""

    instances: list[RecordingSMTP] = []
    fail_with: Exception | None = None
    rejected: dict = {}

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.logins: list[tuple[str, str]] = []
        self.sent: list[tuple] = []
        RecordingSMTP.instances.append(self)

    async def __aenter__(self):
        if RecordingSMTP.fail_with is not None:
            raise RecordingSMTP.fail_with
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def login(self, username, password):
        self.logins.append((username, password))

    async def send_message(self, message, sender, recipients):
        self.sent.append((message, sender, recipients))
        return RecordingSMTP.rejected, "OK"


@pytest.fixture
def smtp(monkeypatch):
    RecordingSMTP.instances = []
    RecordingSMTP.fail_with = None
    RecordingSMTP.rejected = {}
    monkeypatch.setattr(email_module.aiosmtplib, "SMTP", RecordingSMTP)
    return RecordingSMTP


def email_service(url: str) -> EmailService:
    service = EmailService()
    service.parse_url(url)
    return service


@pytest.mark.unit
class TestEmailURL:
    def test_starttls_defaults(self):
        service = email_service("mailto://bob:pw@smtp.example.com/ops@example.com?cc=lead@example.com,bad")

        assert service.port == 587
        assert service.use_tls is False
        assert service.use_starttls is True
        assert service.to == ("ops@example.com",)
        assert service.cc == ("lead@example.com",)
        assert service.from_email == "bob@smtp.example.com"

    def test_implicit_tls(self):
        service = email_service(
            "mailtos://me%40example.com:pw@smtp.example.com/a@example.com?to=b@example.com&from=alerts@example.com"
        )

        assert service.port == 465
        assert service.use_tls is True
        assert service.to == ("a@example.com", "b@example.com")
        assert service.from_email == "alerts@example.com"
        assert service.username == "me@example.com"

    @pytest.mark.parametrize(
        "url",
        ["mailto://smtp.example.com", "mailto://smtp.example.com/a@example.com?from=not-an-address"],
    )
    def test_invalid_urls(self, url):
        with pytest.raises(URLParseError):
            EmailService().parse_url(url)

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("a@example.com", True), ("a@localhost", False), ("no-at", False), ("", False)],
    )
    def test_is_valid_email(self, value, expected):
        assert is_valid_email(value) is expected


@pytest.mark.unit
class TestEmailMessage:
    def test_plain_body(self):
        service = email_service("mailto://smtp.example.com/a@example.com")

        subtype, text = service.render_body(NotificationRequest(title="Disk", body="full", notify_type=NotifyType.ERROR))

        assert subtype == "plain"
        assert text.startswith("❌ Disk\r\n\r\nfull\r\n")
        assert "Notification Type: error" in text

    def test_html_body(self):
        service = email_service("mailto://smtp.example.com/a@example.com?format=html")

        subtype, text = service.render_body(NotificationRequest(title="<T>", body="a\nb"))

        assert subtype == "html"
        assert "<h2>ℹ️ &lt;T&gt;</h2>" in text
        assert "a<br>" in text

    async def test_headers(self):
        service = email_service("mailto://smtp.example.com/a@example.com?cc=c@example.com&name=Ops%20Bot")

        message = await service.build_message(NotificationRequest(body="b", notify_type=NotifyType.WARNING))

        assert message["Subject"] == "Notification (warning)"
        assert message["To"] == "a@example.com"
        assert message["Cc"] == "c@example.com"
        assert message["From"] == "Ops Bot <notifyhub@smtp.example.com>"
        assert message["X-Mailer"] == "notifyhub"

    async def test_subject_override_and_attachments(self):
        service = email_service("mailto://smtp.example.com/a@example.com?subject=Weekly")
        request = NotificationRequest(
            title="Report",
            body="attached",
            body_format=BodyFormat.HTML,
            attachments=(InlineAttachment(b"%PDF-1.4", "report.pdf"),),
        )

        message = await service.build_message(request)

        assert message["Subject"] == "Weekly"
        assert message.is_multipart()
        body, attachment = message.get_payload()
        assert body.get_content_subtype() == "html"
        assert attachment.get_content_type() == "application/pdf"
        assert attachment.get_filename() == "report.pdf"
        assert attachment.get_payload(decode=True) == b"%PDF-1.4"


@pytest.mark.unit
class TestEmailSend:
    async def test_single_session_for_all_recipients(self, smtp):
        service = email_service("mailto://bob:pw@smtp.example.com:2525/a@example.com?bcc=hidden@example.com")

        await service.send(NotificationRequest(title="T", body="b"))

        (session,) = smtp.instances
        assert session.kwargs["hostname"] == "smtp.example.com"
        assert session.kwargs["port"] == 2525
        assert session.kwargs["start_tls"] is True
        assert session.logins == [("bob", "pw")]
        message, sender, recipients = session.sent[0]
        assert sender == "bob@smtp.example.com"
        assert recipients == ["a@example.com", "hidden@example.com"]
        assert "Bcc" not in message

    async def test_no_tls(self, smtp):
        service = email_service("mailto://relay.local/a@example.com?no_tls=yes")

        await service.send(NotificationRequest(body="b"))

        assert smtp.instances[0].kwargs["start_tls"] is False
        assert smtp.instances[0].logins == []

    async def test_authentication_failure(self, smtp):
        smtp.fail_with = aiosmtplib.SMTPAuthenticationError(535, "bad credentials")
        service = email_service("mailto://bob:pw@smtp.example.com/a@example.com")

        with pytest.raises(AuthError):
            await service.send(NotificationRequest(body="b"))

    async def test_connection_failure(self, smtp):
        smtp.fail_with = aiosmtplib.SMTPConnectError("refused")
        service = email_service("mailto://smtp.example.com/a@example.com")

        with pytest.raises(TransportError):
            await service.send(NotificationRequest(body="b"))

    async def test_partially_rejected(self, smtp):
        smtp.rejected = {"a@example.com": aiosmtplib.SMTPResponse(550, "no mailbox")}
        service = email_service("mailto://smtp.example.com/a@example.com")

        with pytest.raises(ProviderError, match="a@example.com"):
            await service.send(NotificationRequest(body="b"))
