from flask import current_app

import mailer
from .metrics import EMAIL_FAILURES


def send_quietly(kind: str, send, *args, **kwargs) -> bool:
    """
    Email is a side effect of an already-committed write, so a failed
    delivery is logged, counted and reported as False, never raised.
    """
    try:
        send(*args, **kwargs)
        return True
    except Exception:
        current_app.logger.exception("Failed to send %s email", kind)
        EMAIL_FAILURES.labels(kind).inc()
        return False


def friend_request(sender, recipient) -> bool:
    return send_quietly("friend_request", mailer.send_friend_request, recipient.email, sender.name, recipient.name)


def invitation(inviter, email: str) -> bool:
    return send_quietly("invitation", mailer.send_invitation, email, inviter.name)


def suggestion(sender, recipient, s) -> bool:
    return send_quietly("suggestion", mailer.send_suggestion, recipient.email, sender.name, s.title, s.year, s.poster)
