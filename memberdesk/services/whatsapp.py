"""WhatsApp deep links and message templates."""
import re
from datetime import date
from typing import Awaitable, Callable, Optional, Union
from urllib.parse import quote

from memberdesk.core import settings
from memberdesk.core.logging_config import get_logger

logger = get_logger("services.whatsapp")

LinkOpener = Callable[[str], Awaitable[bool]]


def format_whatsapp_number(phone_number: str, country_code: Optional[str] = None) -> str:
    country_code = country_code or settings.WHATSAPP_COUNTRY_CODE
    clean_number = re.sub(r"\D", "", phone_number or "")
    return clean_number if clean_number.startswith(country_code) else f"{country_code}{clean_number}"


def build_whatsapp_url(phone_number: str, message: str) -> str:
    return f"https://wa.me/{format_whatsapp_number(phone_number)}?text={quote(message, safe='')}"


async def send_whatsapp_message(phone_number: str, message: str, opener: LinkOpener) -> bool:
    """Hand the deep link to `opener`. Any failure is reported as False, never raised."""
    url = build_whatsapp_url(phone_number, message)
    try:
        opened = await opener(url)
    except Exception as e:
        logger.error(f"Error sending WhatsApp message: {e}")
        return False

    if not opened:
        logger.error("WhatsApp link could not be opened")
    return bool(opened)


def _as_text(value: Union[date, str]) -> str:
    return value.isoformat() if isinstance(value, date) else value


def create_membership_message(
    member_name: str,
    start_date: Union[date, str],
    end_date: Union[date, str],
    assignment_number: str,
    gym_name: Optional[str] = None,
) -> str:
    gym_name = gym_name or settings.GYM_NAME
    return (
        f"🏋️‍♂️ Welcome to {gym_name}! 🏋️‍♂️\n"
        f"\n"
        f"Hi {member_name},\n"
        f"\n"
        f"Your gym membership has been activated!\n"
        f"\n"
        f"📋 Assignment Number: {assignment_number}\n"
        f"📅 Membership Period: {_as_text(start_date)} to {_as_text(end_date)}\n"
        f"\n"
        f"We're excited to have you on your fitness journey with us. "
        f"Our team is here to support you every step of the way.\n"
        f"\n"
        f"For any queries, feel free to contact us.\n"
        f"\n"
        f"Stay Strong! 💪\n"
        f"{gym_name} Team"
    )


def create_payment_reminder_message(
    member_name: str,
    end_date: Union[date, str],
    days_remaining: int,
    gym_name: Optional[str] = None,
) -> str:
    gym_name = gym_name or settings.GYM_NAME
    return (
        f"🏋️‍♂️ {gym_name} - Membership Reminder 🏋️‍♂️\n"
        f"\n"
        f"Hi {member_name},\n"
        f"\n"
        f"Your gym membership expires on {_as_text(end_date)} ({days_remaining} days remaining).\n"
        f"\n"
        f"To continue your fitness journey without interruption, please renew your membership soon.\n"
        f"\n"
        f"Contact us for renewal options.\n"
        f"\n"
        f"Stay Strong! 💪\n"
        f"{gym_name} Team"
    )
