from html import escape

from app.auth.services.email_service import (
    EmailMessage,
    button_html,
    paragraph_html,
    quote_html,
    render_html,
)
from app.core.config import settings


def build_admin_reply_email(
    student_name: str,
    student_email: str,
    ticket_category: str,
    reply_preview: str,
) -> EmailMessage:
    """Tell a student that an administrator answered one of their requests."""
    ticket_url = f"{settings.FRONTEND_URL}/tickets"

    html = render_html(
        "New reply on your support request",
        paragraph_html(f"Hi {escape(student_name)},"),
        paragraph_html(
            f"An administrator replied to your <strong>{escape(ticket_category)}</strong> request:"
        ),
        quote_html(reply_preview),
        button_html(ticket_url, "Open the conversation"),
    )

    text = "\n\n".join(
        [
            f"Hi {student_name},",
            f"An administrator replied to your {ticket_category} request:",
            f'"{reply_preview}"',
            f"Open the conversation: {ticket_url}",
            f"-- {settings.SMTP_FROM_NAME}",
        ]
    )

    return EmailMessage(
        to=student_email,
        subject=f"Reply to your {ticket_category} request",
        body_html=html,
        body_text=text,
    )
