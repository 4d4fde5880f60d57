"""Tests that destinations never keep an adapter's credentials in their URL."""

from __future__ import annotations

import logging

import pytest

from notifyhub.features.dispatch import Dispatcher
from notifyhub.features.scheduler.reporter import MetricsReporter
from notifyhub.features.services.base import redacted_url, secret_values
from notifyhub.features.services.pushover import PushoverService


@pytest.fixture
def dispatcher(registry, dispatch_settings) -> Dispatcher:
    return Dispatcher(registry=registry, settings=dispatch_settings)


@pytest.mark.unit
class TestDestinationRedaction:
    """The stored destination URL hides whatever the adapter parsed as a secret."""

    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("tgram://123456789:AAHdqTcvCH1vGWJxfSeofSAs0K5PALDsaw/987654", "tgram://****/987654"),
            ("discord://1234567890/shorttokenabc", "discord://1234567890/****"),
            ("pover://apptoken1@userkey42", "pover://****@****"),
            ("pover://azGDORePK8gMaC0QOYAMyEEuzJnyUi@uQiRzpo4DXghDmr9QzzfQu27cmVRsG/phone", "pover://****@****/phone"),
            ("slack://T1JJ3T3L2/A1BRTD4JD/TIiajkdnlazk", "slack://****/****/****"),
            ("gotify://localhost/AppTok3n", "gotify://localhost/****"),
            ("pball://o.shorttoken/device1", "pball://****/device1"),
            ("opsgenie://key123@eu/ops-team", "opsgenie://****@eu/ops-team"),
            ("pagerduty://integkey", "pagerduty://****"),
            ("twitter://shortbearer", "twitter://****"),
            ("ntfy://tk_short@ntfy.sh/alerts", "ntfy://****@ntfy.sh/alerts"),
            ("matrix://syt_tok@matrix.org/ops", "matrix://****@matrix.org/ops"),
            ("json://apitoken@hooks.example.com/x", "json://****@hooks.example.com/x"),
            ("mailgun://key-short@mg.example.com/ops@example.com", "mailgun://****@mg.example.com/ops@example.com"),
            ("datadog://apikey:appkey@eu", "datadog://****:****@eu"),
            ("datadog://ddapikey", "datadog://****"),
        ],
    )
    def test_destination_url(self, dispatcher, url, expected):
        destination = dispatcher.add(url)

        assert destination.url == expected

    def test_msteams_tokens(self, dispatcher):
        destination = dispatcher.add("msteams://contoso/TokenA1/TokenB2/TokenC3")

        assert destination.url == "msteams://contoso/****/****/****"

    def test_twilio_keeps_phone_numbers(self, dispatcher):
        destination = dispatcher.add("twilio://AC123:authtok@+15551234567/+15557654321")

        assert "authtok" not in destination.url
        assert "+15557654321" in destination.url

    async def test_response_carries_redacted_url(self, registry, ok_pool, dispatch_settings):
        """Responses and metrics reuse the destination's redacted URL."""
        dispatcher = Dispatcher(registry=registry, pool=ok_pool, settings=dispatch_settings)
        dispatcher.add("discord://1234567890/shorttokenabc")

        responses = await dispatcher.notify("t", "b")
        metric = MetricsReporter.build_metric(responses[0])

        assert responses[0].success
        assert responses[0].service_url == "discord://1234567890/****"
        assert "shorttokenabc" not in metric.service_url

    async def test_request_log_omits_token_path(self, registry, ok_pool, dispatch_settings, caplog):
        dispatcher = Dispatcher(registry=registry, pool=ok_pool, settings=dispatch_settings)
        dispatcher.add("tgram://123456789:AAHdqTcvCH1vGWJxfSeofSAs0K5PALDsaw/987654")
        caplog.set_level(logging.DEBUG)

        await dispatcher.notify("t", "b")

        assert "api.telegram.org" in caplog.text
        assert "AAHdqTcvCH1vGWJxfSeofSAs0K5PALDsaw" not in caplog.text


@pytest.mark.unit
class TestSecretValues:
    def test_reads_declared_fields(self):
        adapter = PushoverService()
        adapter.parse_url("pover://apptoken1@userkey42")

        assert set(secret_values(adapter)) == {"apptoken1", "userkey42"}
        assert redacted_url(adapter, "pover://apptoken1@userkey42") == "pover://****@****"

    def test_adapter_without_secret_fields(self):
        class Plain:
            pass

        assert list(secret_values(Plain())) == []
