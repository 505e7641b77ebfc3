"""
Email Service using Resend
Templates are written in MJML and compiled to HTML before sending
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, FRONTEND_URL, RESEND_API_KEY
from .email_templates import (
    booking_confirmation_template,
    booking_status_template,
    new_review_template,
    rating_alert_template,
    review_invite_template,
    support_ticket_update_template,
    welcome_email_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        if result.get("errors"):
            logger.warning(f"MJML compilation warnings: {result['errors']}")
        return result.get("html", "")
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise RuntimeError(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Send response dict, or {"skipped": True} when email is not configured
    """
    recipients = [to] if isinstance(to, str) else to

    if not RESEND_API_KEY:
        logger.warning(f"⚠️ RESEND_API_KEY missing - skipping email '{subject}' to {recipients}")
        return {"skipped": True}

    html_content = compile_mjml_to_html(mjml_content)

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise RuntimeError(f"Failed to send email: {str(e)}") from e


async def send_email_safely(**kwargs) -> dict:
    """Send an email without letting delivery failures break the calling flow"""
    try:
        return await send_email(**kwargs)
    except Exception as e:
        logger.error(f"❌ Best-effort email failed: {e}")
        return {"error": str(e)}


# ============================================
# Pre-built emails for marketplace events
# ============================================


async def send_welcome_email(to: str, user_name: str, role: str) -> dict:
    """Send welcome email to new users"""
    return await send_email_safely(
        to=to,
        subject="Welcome to FindoTrip",
        mjml_content=welcome_email_template(user_name, role),
    )


async def send_booking_confirmation_email(
    to: str,
    customer_name: str,
    booking_number: str,
    service_name: str,
    start: str,
    end: str,
    total: float,
    currency: str,
) -> dict:
    return await send_email_safely(
        to=to,
        subject=f"Booking received - {booking_number}",
        mjml_content=booking_confirmation_template(
            customer_name, booking_number, service_name, start, end, total, currency
        ),
    )


async def send_booking_status_email(
    to: str, customer_name: str, booking_number: str, service_name: str, status: str
) -> dict:
    return await send_email_safely(
        to=to,
        subject=f"Booking {booking_number} is now {status.lower()}",
        mjml_content=booking_status_template(customer_name, booking_number, service_name, status),
    )


async def send_review_invite_email(
    to: str, customer_name: str, service_name: str, booking_type: str, booking_id: int
) -> dict:
    review_url = f"{FRONTEND_URL}/reviews/new?booking={booking_type}:{booking_id}"
    return await send_email_safely(
        to=to,
        subject=f"How was {service_name}?",
        mjml_content=review_invite_template(customer_name, service_name, review_url),
    )


async def send_new_review_email(
    to: str, provider_name: str, service_name: str, rating: int, comment: str
) -> dict:
    return await send_email_safely(
        to=to,
        subject=f"New {rating}-star review for {service_name}",
        mjml_content=new_review_template(provider_name, service_name, rating, comment),
    )


async def send_rating_alert_email(
    to: str, provider_name: str, average_rating: float, threshold: float
) -> dict:
    return await send_email_safely(
        to=to,
        subject="Your FindoTrip rating needs attention",
        mjml_content=rating_alert_template(provider_name, average_rating, threshold),
    )


async def send_support_ticket_email(
    to: str, provider_name: str, ticket_number: str, ticket_title: str, update: str
) -> dict:
    return await send_email_safely(
        to=to,
        subject=f"Support ticket {ticket_number} updated",
        mjml_content=support_ticket_update_template(
            provider_name, ticket_number, ticket_title, update
        ),
    )
