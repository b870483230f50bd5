from datetime import date

import pytest

from memberdesk.services.whatsapp import (
    build_whatsapp_url,
    create_membership_message,
    create_payment_reminder_message,
    format_whatsapp_number,
    send_whatsapp_message,
)


@pytest.mark.parametrize(
    "phone, expected",
    [
        ("9876543210", "919876543210"),
        ("98765 43210", "919876543210"),
        ("+91 98765-43210", "919876543210"),
        ("919876543210", "919876543210"),
    ],
)
def test_format_whatsapp_number(phone, expected):
    assert format_whatsapp_number(phone) == expected


def test_other_country_code():
    assert format_whatsapp_number("5551234567", country_code="1") == "15551234567"


def test_url_encodes_message():
    url = build_whatsapp_url("9876543210", "Hi there & welcome/back?")
    assert url == "https://wa.me/919876543210?text=Hi%20there%20%26%20welcome%2Fback%3F"


async def test_send_reports_opener_result():
    async def ok(url):
        return True

    async def refused(url):
        return False

    async def broken(url):
        raise OSError("no handler for wa.me links")

    assert await send_whatsapp_message("9876543210", "hello", ok) is True
    assert await send_whatsapp_message("9876543210", "hello", refused) is False
    assert await send_whatsapp_message("9876543210", "hello", broken) is False


def test_membership_message():
    message = create_membership_message("Asha Rao", date(2025, 1, 15), "2025-04-15", "2025001")

    assert message.startswith("🏋️‍♂️ Welcome to HAJI FITNESS POINT! 🏋️‍♂️")
    assert "Hi Asha Rao," in message
    assert "📋 Assignment Number: 2025001" in message
    assert "📅 Membership Period: 2025-01-15 to 2025-04-15" in message
    assert message.endswith("HAJI FITNESS POINT Team")


def test_reminder_message_with_custom_gym():
    message = create_payment_reminder_message("Asha Rao", date(2025, 4, 15), 3, gym_name="Iron Den")

    assert message.startswith("🏋️‍♂️ Iron Den - Membership Reminder")
    assert "expires on 2025-04-15 (3 days remaining)" in message
    assert message.endswith("Iron Den Team")
