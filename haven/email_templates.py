"""
MJML Email Templates
All Haven emails share one layout: heading, a short paragraph and a single call to action.
"""

from typing import Optional

from .config import FRONTEND_URL
from .utils.sanitization import sanitize_string

THEME = {
    "primary": "#059669",
    "background": "#f9fafb",
    "text_primary": "#111827",
    "text_secondary": "#374151",
    "text_muted": "#9ca3af",
    "border": "#e5e7eb",
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
            <mj-button
              href="{cta_url}"
              align="left"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="10px"
              inner-padding="12px 24px"
              padding="16px 0 0 0">
              {cta_label}
            </mj-button>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}" width="480px">
        <mj-section background-color="#ffffff" padding="24px">
          <mj-column>
            <mj-text font-size="22px" font-weight="600" color="{THEME['primary']}" padding="0 0 8px 0">
              {title}
            </mj-text>
            {content_sections}
            {cta_section}
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="24px 0 0 0" />
            <mj-text font-size="12px" color="{THEME['text_muted']}" padding="12px 0 0 0">
              Haven · Find your homeschool community ·
              <a href="{FRONTEND_URL}" style="color: {THEME['text_muted']};">familyhaven.app</a>
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def connection_request_template(from_name: str) -> str:
    from_name = sanitize_string(from_name)
    content = f"""
    <mj-text padding="0">
      <strong>{from_name}</strong> wants to connect with your family on Haven.
    </mj-text>
    """
    return get_base_template(
        title="New connection request",
        preview_text=f"{from_name} wants to connect",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/connections",
        cta_label="View request",
    )


def rsvp_template(event_title: str, event_date: str, attendee_name: str) -> str:
    event_title = sanitize_string(event_title)
    attendee_name = sanitize_string(attendee_name)
    event_date = sanitize_string(event_date)
    content = f"""
    <mj-text padding="0">
      <strong>{attendee_name}</strong> has RSVP'd to your event <strong>{event_title}</strong> on {event_date}.
    </mj-text>
    """
    return get_base_template(
        title="New RSVP",
        preview_text=f"{attendee_name} is going to {event_title}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/events",
        cta_label="View event",
    )


def circle_invite_template(from_name: str, circle_name: str) -> str:
    from_name = sanitize_string(from_name)
    circle_name = sanitize_string(circle_name)
    content = f"""
    <mj-text padding="0">
      <strong>{from_name}</strong> has invited you to join the circle <strong>{circle_name}</strong> on Haven.
    </mj-text>
    """
    return get_base_template(
        title="Circle invitation",
        preview_text=f"Join {circle_name} on Haven",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/circles/invitations",
        cta_label="View invitation",
    )


def welcome_template(name: str) -> str:
    name = sanitize_string(name)
    content = f"""
    <mj-text padding="0">
      Hi {name}, your account is ready. Start by completing your profile so other local
      families can find you.
    </mj-text>
    """
    return get_base_template(
        title="Welcome to Haven",
        preview_text="Your Haven account is ready",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/onboarding",
        cta_label="Set up my profile",
    )


def announcement_template(title: str, content_text: str) -> str:
    title = sanitize_string(title)
    paragraphs = "".join(
        f'<mj-text padding="0 0 12px 0">{sanitize_string(p)}</mj-text>'
        for p in content_text.split("\n\n")
        if p.strip()
    )
    return get_base_template(
        title=title,
        preview_text=title,
        content_sections=paragraphs,
        cta_url=f"{FRONTEND_URL}/notifications",
        cta_label="Open Haven",
    )
