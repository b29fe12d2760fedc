"""
Transactional email through Resend.
Templates are MJML (see email_templates.py) compiled to HTML before sending.
"""

import io
import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from . import config
from .email_templates import (
    announcement_template,
    circle_invite_template,
    connection_request_template,
    rsvp_template,
    welcome_template,
)

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised when Resend rejects or fails to deliver a message"""


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(io.StringIO(mjml_content))
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise EmailDeliveryError(f"Failed to compile MJML template: {e}") from e

    if result.get("errors"):
        logger.warning(f"MJML compilation warnings: {result['errors']}")
    return result.get("html", "")


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> Optional[dict]:
    """
    Send an email via Resend.

    Returns the Resend response, or None when no API key is configured
    (the send is skipped and logged).

    Raises:
        EmailDeliveryError: compilation or delivery failed
    """
    recipients = [to] if isinstance(to, str) else to

    if not config.RESEND_API_KEY:
        logger.info(f"RESEND_API_KEY not set, skipping email '{subject}' to {recipients}")
        return None

    html_content = compile_mjml_to_html(mjml_content)
    resend.api_key = config.RESEND_API_KEY

    try:
        logger.info(f"Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": from_address or config.EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
    except Exception as e:
        logger.error(f"Email send error to {recipients}: {e}")
        raise EmailDeliveryError(f"Failed to send email: {e}") from e

    logger.info(f"Email sent via Resend: {response}")
    return response


async def send_connection_request_email(to: str, from_name: str) -> Optional[dict]:
    return await send_email(
        to=to,
        subject=f"{from_name} wants to connect on Haven",
        mjml_content=connection_request_template(from_name),
    )


async def send_rsvp_email(
    to: str, event_title: str, event_date: str, attendee_name: str
) -> Optional[dict]:
    """Tell an event host someone is coming"""
    return await send_email(
        to=to,
        subject=f"New RSVP for {event_title}",
        mjml_content=rsvp_template(event_title, event_date, attendee_name),
    )


async def send_circle_invite_email(to: str, from_name: str, circle_name: str) -> Optional[dict]:
    return await send_email(
        to=to,
        subject=f"You've been invited to join {circle_name}",
        mjml_content=circle_invite_template(from_name, circle_name),
    )


async def send_welcome_email(to: str, name: str) -> Optional[dict]:
    return await send_email(
        to=to,
        subject="Welcome to Haven!",
        mjml_content=welcome_template(name),
    )


async def send_announcement_email(to: str, title: str, content: str) -> Optional[dict]:
    return await send_email(
        to=to,
        subject=title,
        mjml_content=announcement_template(title, content),
    )
