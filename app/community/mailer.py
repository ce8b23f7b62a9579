from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage

from flask import current_app

logger = logging.getLogger(__name__)


def smtp_enabled() -> bool:
    cfg = current_app.config
    return bool(cfg.get("SMTP_HOST") and cfg.get("MAIL_FROM"))


def send_email(to: str, subject: str, body: str) -> bool:
    """
    Send a plain-text email. Returns False (and logs) when delivery is not
    configured or the SMTP exchange fails; callers never block on mail.
    """
    cfg = current_app.config
    if not smtp_enabled():
        logger.info("Email delivery disabled; would send %r to %s:\n%s", subject, to, body)
        return False

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = cfg["MAIL_FROM"]
    msg["To"] = to
    msg.set_content(body)
    try:
        with smtplib.SMTP(cfg["SMTP_HOST"], int(cfg.get("SMTP_PORT") or 587), timeout=15) as smtp:
            if cfg.get("SMTP_USE_TLS"):
                smtp.starttls()
            if cfg.get("SMTP_USERNAME"):
                smtp.login(cfg["SMTP_USERNAME"], cfg.get("SMTP_PASSWORD") or "")
            smtp.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Email to %s failed: %s", to, e)
        return False
    return True


def send_confirmation_email(to: str, link: str) -> bool:
    site = current_app.config.get("SITE_NAME") or "the community"
    body = (
        f"Welcome to {site}!\n\n"
        f"Confirm your email address to activate your account:\n{link}\n\n"
        "If you did not sign up, you can ignore this message.\n"
    )
    return send_email(to, f"Confirm your {site} account", body)
