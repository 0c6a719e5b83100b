import logging
from abc import ABC, abstractmethod

import requests
from flask import current_app, render_template

import tmdb_api

logger = logging.getLogger(__name__)

RESEND_URL = "https://api.resend.com/emails"


class EmailError(Exception):
    """Raised when the email provider rejects or cannot be reached."""


class EmailSender(ABC):
    """Abstract email sender interface"""

    @abstractmethod
    def send_email(self, to_email: str, subject: str, html: str) -> None:
        """Send email, raise EmailError on failure"""


class ResendEmailSender(EmailSender):
    def __init__(self, api_key: str, from_email: str):
        self.api_key = api_key
        self.from_email = from_email

    def send_email(self, to_email: str, subject: str, html: str) -> None:
        payload = {"from": self.from_email, "to": [to_email], "subject": subject, "html": html}
        try:
            r = requests.post(
                RESEND_URL,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=10,
            )
        except requests.exceptions.RequestException as e:
            raise EmailError(f"Resend request failed: {e}") from e
        if not r.ok:
            raise EmailError(f"Resend returned {r.status_code}: {r.text[:200]}")


class ConsoleEmailSender(EmailSender):
    """Development sender: writes the message to the log instead of delivering it."""

    def send_email(self, to_email: str, subject: str, html: str) -> None:
        logger.info("EMAIL to=%s subject=%r\n%s", to_email, subject, html)


def create_email_sender(config) -> EmailSender:
    if config.get("RESEND_API_KEY"):
        return ResendEmailSender(config["RESEND_API_KEY"], config.get("EMAIL_FROM") or "Trackd <noreply@trackd.app>")
    return ConsoleEmailSender()


def _send(to_email: str, subject: str, template: str, **ctx) -> None:
    html = render_template(template, app_url=current_app.config.get("APP_URL", ""), **ctx)
    create_email_sender(current_app.config).send_email(to_email, subject, html)


def send_friend_request(to_email: str, sender_name: str, recipient_name: str) -> None:
    _send(
        to_email,
        f"{sender_name} sent you a friend request on Trackd",
        "email/friend_request.html",
        sender_name=sender_name,
        recipient_name=recipient_name,
    )


def send_invitation(to_email: str, inviter_name: str) -> None:
    invite_url = f"{current_app.config.get('APP_URL', '').rstrip('/')}/signin"
    _send(
        to_email,
        f"{inviter_name} invited you to Trackd",
        "email/invitation.html",
        inviter_name=inviter_name,
        invite_url=invite_url,
    )


def send_suggestion(to_email: str, sender_name: str, title: str, year: str | None, poster: str | None) -> None:
    _send(
        to_email,
        f"{sender_name} thinks you should watch {title}",
        "email/suggestion.html",
        sender_name=sender_name,
        title=title,
        year=year,
        poster_url=tmdb_api.tmdb_poster_url(poster),
    )
