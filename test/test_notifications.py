import asyncio

import pytest

from _helper import RecordingMailer
from purevia.notifications import Notifier, format_price, format_validity
from purevia.otp import OtpPurpose


@pytest.mark.parametrize("value, text", [
    (120, "120"),
    (120.0, "120"),
    (60.5, "60.50"),
    (12499.99, "12499.99"),
    (1234567.89, "1234567.89"),
])
def test_format_price(value, text):
    assert format_price(value) == text


def test_confirmation_mail_keeps_full_total():
    mailer = RecordingMailer()
    asyncio.run(Notifier(mailer).order_confirmed("a@x.com", "A", 12499.99))

    [mail] = mailer.sent
    assert "₹12499.99" in mail["html"]


def test_confirmation_mail_drops_zero_paise():
    mailer = RecordingMailer()
    asyncio.run(Notifier(mailer).order_confirmed("a@x.com", "A", 120))
    assert "₹120<" in mailer.sent[0]["html"]


@pytest.mark.parametrize("ttl, text", [
    (30, "30 seconds"),
    (60, "1 minute"),
    (90, "2 minutes"),
    (300, "5 minutes"),
])
def test_format_validity(ttl, text):
    assert format_validity(ttl) == text


@pytest.mark.parametrize("purpose", [OtpPurpose.ORDER, OtpPurpose.CANCEL])
def test_short_ttl_is_not_shown_as_zero_minutes(purpose):
    mailer = RecordingMailer()
    asyncio.run(Notifier(mailer).send_otp("a@x.com", "A", purpose, "123456", 30))

    html = mailer.sent[0]["html"]
    assert "0 minutes" not in html
    assert "30 seconds" in html
