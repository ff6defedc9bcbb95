"""Email service using Resend API."""

from __future__ import annotations

import html
import logging

from marketplace.config import get_settings

logger = logging.getLogger(__name__)

_settings = get_settings()


def _send(to: str, subject: str, html: str) -> bool:
    """Send an email via Resend. Returns True on success."""
    if not _settings.resend_api_key:
        logger.debug("RESEND_API_KEY not set, email to %s not sent: %s", to, subject)
        return False

    import resend
    resend.api_key = _settings.resend_api_key

    try:
        resend.Emails.send({
            "from": _settings.email_from,
            "to": [to],
            "subject": subject,
            "html": html,
        })
        return True
    except Exception:
        logger.exception("Failed to send email to %s", to)
        return False


def send_notification_email(email: str, title: str, message: str, link_path: str = "/notifications") -> bool:
    """Mirror an in-app notification to the recipient's inbox.

    Blocking; async callers run it in a worker thread.
    """
    url = html.escape(f"{_settings.app_url}{link_path}", quote=True)
    body = f"""
    <h2>{html.escape(title)}</h2>
    <p>{html.escape(message)}</p>
    <p><a href="{url}">View in Homestead</a></p>
    """
    return _send(email, title, body)
