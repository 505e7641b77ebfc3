"""
MJML Email Templates
Transactional emails for bookings, reviews and support tickets
"""

from html import escape
from typing import Optional

from .config import FRONTEND_URL

# FindoTrip palette - sky/slate
THEME = {
    "primary": "#0284c7",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "warning": "#f59e0b",
    "danger": "#ef4444",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button href="{cta_url}" background-color="{THEME['primary']}" color="#ffffff"
              font-weight="600" border-radius="8px" padding="18px 40px" font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" padding="0 0 16px 0">
              {title}
            </mj-text>
            {content_sections}
          </mj-column>
        </mj-section>
        {cta_section}
        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              You're receiving this because you have a FindoTrip account.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _row(label: str, value) -> str:
    return f"""
    <mj-text padding="0 0 8px 0">
      <strong>{escape(label)}:</strong> {escape(str(value))}
    </mj-text>
    """


def welcome_email_template(user_name: str, role: str) -> str:
    """Welcome email MJML template"""
    if role == "CUSTOMER":
        intro = "Find stays, rent vehicles and join guided tours, all in one place."
    else:
        intro = "Create your first listing and it will go live once our team approves it."

    content = f"""
    <mj-text>Hi {escape(user_name)},</mj-text>
    <mj-text>Welcome to FindoTrip! {intro}</mj-text>
    """
    return get_base_template(
        title="Welcome to FindoTrip!",
        preview_text="Your account has been created successfully",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/dashboard",
        cta_label="Go to Dashboard",
    )


def booking_confirmation_template(
    customer_name: str,
    booking_number: str,
    service_name: str,
    start: str,
    end: str,
    total: float,
    currency: str,
) -> str:
    content = f"""
    <mj-text>Hi {escape(customer_name)}, your booking request has been received.</mj-text>
    {_row("Booking number", booking_number)}
    {_row("Service", service_name)}
    {_row("From", start)}
    {_row("To", end)}
    {_row("Total", f"{currency} {total:,.2f}")}
    """
    return get_base_template(
        title="Booking received",
        preview_text=f"Booking {booking_number}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/dashboard/bookings",
        cta_label="View Booking",
    )


def booking_status_template(
    customer_name: str, booking_number: str, service_name: str, status: str
) -> str:
    content = f"""
    <mj-text>Hi {escape(customer_name)},</mj-text>
    <mj-text>
      The status of your booking for {escape(service_name)} is now <strong>{escape(status)}</strong>.
    </mj-text>
    {_row("Booking number", booking_number)}
    """
    return get_base_template(
        title="Booking update",
        preview_text=f"Booking {booking_number} is {status}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/dashboard/bookings",
        cta_label="View Booking",
    )


def review_invite_template(customer_name: str, service_name: str, review_url: str) -> str:
    content = f"""
    <mj-text>Hi {escape(customer_name)},</mj-text>
    <mj-text>
      Thanks for travelling with FindoTrip. How was {escape(service_name)}?
      Your review helps other travellers choose with confidence.
    </mj-text>
    """
    return get_base_template(
        title="How was your trip?",
        preview_text=f"Review {service_name}",
        content_sections=content,
        cta_url=review_url,
        cta_label="Write a Review",
    )


def new_review_template(provider_name: str, service_name: str, rating: int, comment: str) -> str:
    stars = "★" * rating + "☆" * (5 - rating)
    content = f"""
    <mj-text>Hi {escape(provider_name)}, {escape(service_name)} received a new review.</mj-text>
    <mj-text font-size="20px" color="{THEME['warning']}">{stars}</mj-text>
    <mj-text color="{THEME['text_muted']}">"{escape(comment)}"</mj-text>
    """
    return get_base_template(
        title="New review received",
        preview_text=f"{rating}-star review for {service_name}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/dashboard/reviews",
        cta_label="Reply to Review",
    )


def rating_alert_template(provider_name: str, average_rating: float, threshold: float) -> str:
    content = f"""
    <mj-text>Hi {escape(provider_name)},</mj-text>
    <mj-text color="{THEME['danger']}">
      Your average rating has dropped to {average_rating:.1f}, below {threshold:.1f}.
    </mj-text>
    <mj-text>Take a look at recent feedback and reply to guests where you can.</mj-text>
    """
    return get_base_template(
        title="Rating alert",
        preview_text="Your average rating needs attention",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/dashboard/reviews",
        cta_label="View Reviews",
    )


def support_ticket_update_template(
    provider_name: str, ticket_number: str, ticket_title: str, update: str
) -> str:
    content = f"""
    <mj-text>Hi {escape(provider_name)},</mj-text>
    <mj-text>{escape(update)}</mj-text>
    {_row("Ticket", ticket_number)}
    {_row("Subject", ticket_title)}
    """
    return get_base_template(
        title="Support ticket update",
        preview_text=f"Update on {ticket_number}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/dashboard/support",
        cta_label="Open Ticket",
    )
